"""
Best-effort recovery of a JSON object from an LLM reply.

Models asked for "ONLY valid JSON" still wrap it in markdown fences, prefix it
with a sentence, or leave trailing commas. Each strategy below is tried in
order until one yields a dict.
"""

import json
import re

from loguru import logger

from ..core.errors import InvoiceParseError

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

_SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
}


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrappers, keeping the inner text."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.replace("```json", "").replace("```", "").strip()


def sanitize_json(text: str) -> str:
    for bad, good in _SMART_QUOTES.items():
        text = text.replace(bad, good)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _try_load(candidate: str):
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_model_json(content: str | None) -> dict:
    """
    Parse the model's reply into a dict.

    Raises:
        InvoiceParseError: nothing in the reply decodes to a JSON object
    """
    if not content or not content.strip():
        raise InvoiceParseError(content, "Empty response from model")

    candidates = [content.strip(), strip_code_fences(content)]
    match = _OBJECT_RE.search(content)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        parsed = _try_load(candidate)
        if isinstance(parsed, dict):
            return parsed

    for candidate in candidates:
        parsed = _try_load(sanitize_json(candidate))
        if isinstance(parsed, dict):
            logger.debug("Recovered model JSON after sanitizing")
            return parsed

    logger.warning("Could not parse model response as JSON", preview=content[:200])
    raise InvoiceParseError(content)
