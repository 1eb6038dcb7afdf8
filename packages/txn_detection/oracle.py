"""Chat intent oracle backed by the OpenAI Responses API.

The oracle is an optional pre-pass for chat messages: it asks a model whether
the user wants to record a transaction and, if so, for its amount, currency,
direction, category and a short description. It never decides on its own:

- the caller bounds every call with a timeout;
- API errors, invalid JSON (markdown fences are tolerated), schema mismatches
  and non-positive amounts all yield ``None`` so the caller falls back to the
  deterministic chat cascade.

No client is created at import time; :func:`_create_client` is the seam tests
monkeypatch.
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Mapping
from typing import Any

from openai import AsyncOpenAI
from openai.types.responses import ResponseTextConfigParam
from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)
from pydantic import ValidationError

from .categories import TAXONOMY
from .logging_setup import get_logger
from .models import OracleIntent

_logger = get_logger("txn_detection.oracle")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def build_system_instructions(*, home_currency: str = "VND") -> str:
    """Instructions for the intent task; the message itself goes in ``input``."""

    return (
        "Analyze the user's chat message to see if they want to add a financial transaction.\n"
        "If it is a request to add a transaction, set is_transaction to true and fill in "
        "type (\"income\" or \"expense\"), amount (a positive number without currency "
        "symbols), currency, category and a brief description. Otherwise set "
        "is_transaction to false and every other field to null.\n"
        "\n"
        "Currency detection rules:\n"
        "- $ = USD (unless written as A$, C$ or S$ which are AUD, CAD, SGD)\n"
        "- € = EUR, £ = GBP, ¥ = JPY, ₫ = VND, ₹ = INR, CHF = CHF\n"
        "- If no symbol is present, look for a three-letter code (USD, EUR, VND, ...)\n"
        f"- If still no currency is found, use \"{home_currency}\"\n"
        "\n"
        "Examples:\n"
        '- "my mom just gave me $10 for lunch" -> income, 10, USD, "lunch money from mom"\n'
        '- "I spent 50000₫ on groceries" -> expense, 50000, VND, Food & Dining, "groceries"\n'
        '- "add me €100 expense buying clothes" -> expense, 100, EUR, Shopping, "buying clothes"\n'
        '- "received 1000 VND from friend" -> income, 1000, VND, "from friend"\n'
        '- "How much did I spend this month?" -> not a transaction\n'
        "\n"
        "Choose category only from the allowed list; use null when none fits. "
        "Output JSON only that conforms to the specified schema."
    )


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Strict JSON Schema for :class:`~txn_detection.models.OracleIntent`."""

    categories: list[str | None] = [*sorted(TAXONOMY), None]
    return {
        "type": "json_schema",
        "name": "chat_transaction_intent",
        "schema": {
            "type": "object",
            "properties": {
                "is_transaction": {"type": "boolean"},
                "type": {"type": ["string", "null"], "enum": ["income", "expense", None]},
                "amount": {"type": ["number", "null"]},
                "currency": {"type": ["string", "null"]},
                "category": {"type": ["string", "null"], "enum": categories},
                "description": {"type": ["string", "null"]},
            },
            "required": ["is_transaction", "type", "amount", "currency", "category", "description"],
            "additionalProperties": False,
        },
        "strict": True,
    }


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses SDK result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    Raises ``ValueError`` when no text can be found.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content and len(content) > 0:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except Exception:  # noqa: BLE001 - tolerate SDK shape differences
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def decode_intent(text: str) -> OracleIntent:
    """Parse model text into a validated intent; raises ``ValueError`` on junk."""

    cleaned = _FENCE_RE.sub("", text).replace("```", "").strip()
    decoded = json.loads(cleaned)
    if not isinstance(decoded, Mapping):
        raise ValueError("oracle output is not a JSON object")
    # Older prompts answered with camelCase keys.
    if "is_transaction" not in decoded and "isTransaction" in decoded:
        decoded = {**decoded, "is_transaction": decoded["isTransaction"]}
    return OracleIntent.model_validate(decoded)


def _create_client() -> AsyncOpenAI:
    return AsyncOpenAI()


class ChatOracle:
    """Asks the model for a transaction intent in one chat message."""

    def __init__(
        self,
        *,
        model: str = "gpt-5-mini",
        home_currency: str = "VND",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self._client = client
        self._instructions = build_system_instructions(home_currency=home_currency)
        self._text_cfg = ResponseTextConfigParam(format=build_response_format())

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = _create_client()
        return self._client

    async def detect(self, text: str) -> OracleIntent | None:
        t0 = time.perf_counter()
        try:
            resp = await self._get_client().responses.create(
                model=self.model,
                instructions=self._instructions,
                input=text,
                text=self._text_cfg,
            )
        except Exception as e:  # noqa: BLE001
            _logger.warning(
                "oracle:call_failed model=%s latency_ms=%.2f error=%s",
                self.model,
                (time.perf_counter() - t0) * 1000.0,
                e.__class__.__name__,
            )
            return None

        try:
            intent = decode_intent(_extract_response_text(resp))
        except (ValueError, ValidationError) as e:
            _logger.debug("oracle:malformed error=%s", e.__class__.__name__)
            return None

        _logger.info(
            "oracle:done accepted=%s latency_ms=%.2f",
            intent.accepted,
            (time.perf_counter() - t0) * 1000.0,
        )
        return intent


__all__ = [
    "ChatOracle",
    "build_response_format",
    "build_system_instructions",
    "decode_intent",
]
