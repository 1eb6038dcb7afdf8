"""Terminal prompts for the review CLI (prompt_toolkit-based).

Kept apart from the engine so the prompts can be tested in isolation with a
pipe input and a dummy output.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

REVIEW_ACTIONS: tuple[str, ...] = ("save", "skip", "category", "later")


class _PrefixSuggest(AutoSuggest):
    """Grey inline remainder of the first vocabulary word starting with the input."""

    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        for w in self._vocab:
            if w.lower() == lower:
                return None
        for w in self._vocab:
            if w.lower().startswith(lower):
                return Suggestion(w[len(text) :])
        return None


class _OneOf(Validator):
    def __init__(self, canonical: dict[str, str], error: str) -> None:
        self._canonical = canonical
        self._error = error

    def validate(self, document) -> None:
        if document.text.strip().lower() not in self._canonical:
            raise ValidationError(message=self._error)


def _session_like(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _choice_prompt(
    words: list[str],
    *,
    default: str,
    message: str,
    error: str,
    session: PromptSession | None,
) -> str:
    canonical = {w.lower(): w for w in words}
    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=False)

    kb = KeyBindings()
    menu_opened = False
    menu_index = 0

    def _best_prefix_match(text: str) -> str | None:
        if not text:
            return None
        lower = text.lower()
        for w in words:
            wl = w.lower()
            if wl == lower:
                return None
            if wl.startswith(lower):
                return w
        return None

    def _open_or_advance(b) -> None:
        nonlocal menu_opened, menu_index
        if b.complete_state is None:
            b.start_completion(select_first=True)
            menu_index = 0
        else:
            b.complete_next()
            menu_index += 1
        menu_opened = True

    @kb.add("down", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        _open_or_advance(event.app.current_buffer)

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover
        b = event.app.current_buffer
        cand = _best_prefix_match(b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
        else:
            _open_or_advance(b)

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        elif menu_opened and not b.document.text:
            # Headless terminals may not have rendered the menu yet.
            b.insert_text(words[max(0, min(menu_index, len(words) - 1))])
        else:
            cand = _best_prefix_match(b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    sess = _session_like(session, kb)
    result = sess.prompt(
        message,
        completer=completer,
        default=default,
        key_bindings=kb,
        auto_suggest=_PrefixSuggest(words),
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
        validator=_OneOf(canonical, error),
        validate_while_typing=False,
    )
    if result.strip() == "":
        return default
    return canonical.get(result.strip().lower(), result.strip())


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Choose category (Enter to accept): ",
    session: PromptSession | None = None,
) -> str:
    """Prompt for one category from a closed list; the default is pre-filled.

    Typing narrows the completion menu (case-insensitive, substring match);
    Tab completes the first prefix match or opens the menu; Enter accepts.
    Returns the canonical spelling from ``categories``.
    """

    return _choice_prompt(
        list(categories),
        default=default,
        message=message,
        error="Pick a category from the list.",
        session=session,
    )


def prompt_review_action(
    *,
    default: str = "save",
    message: str = "Action [save/skip/category/later]: ",
    session: PromptSession | None = None,
) -> str:
    return _choice_prompt(
        list(REVIEW_ACTIONS),
        default=default,
        message=message,
        error="Type save, skip, category or later.",
        session=session,
    )


__all__ = ["REVIEW_ACTIONS", "prompt_review_action", "select_category"]
