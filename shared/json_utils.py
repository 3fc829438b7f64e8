# shared/json_utils.py
"""
Centralized JSON parsing utilities for recipehub.

Besides the usual safe parse/dump helpers this module recovers JSON objects
from free-form model output, which may be pure JSON, JSON inside a fenced
code block, or JSON embedded in surrounding prose.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_FENCE_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
# Greedy: spans from the first "{" to the last "}" in the text
JSON_BRACES_PATTERN = re.compile(r"\{[\s\S]*\}")


def safe_json_parse(
    value: Any, default: T = None, expected_type: type = None
) -> Union[T, dict, list, str, int, float, bool]:
    """
    Safely parse JSON with consistent error handling.

    Args:
        value: Value to parse (string, dict, list, etc.)
        default: Default value to return on parse failure
        expected_type: Expected type for validation (dict, list, etc.)

    Returns:
        Parsed value or default on failure
    """
    if expected_type and isinstance(value, expected_type):
        return value

    if not isinstance(value, str):
        return value if value is not None else default

    try:
        parsed = json.loads(value)

        if expected_type and not isinstance(parsed, expected_type):
            logger.debug(f"Parsed JSON type {type(parsed)} doesn't match expected {expected_type}")
            return default

        return parsed

    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.debug(f"JSON parse failed for value '{value[:100]}...': {e}")
        return default


def parse_jsonb_field(field_value: Any, default: Any = None, field_name: str = "unknown") -> Any:
    """
    Parse a JSONB column value which asyncpg may hand back as a string.

    Args:
        field_value: JSONB field value from database
        default: Value to return when the field is empty or unparsable
        field_name: Field name for logging purposes
    """
    if field_value is None:
        return default

    if isinstance(field_value, (dict, list)):
        return field_value

    parsed = safe_json_parse(field_value, default)

    if parsed is default and field_value:
        logger.warning(f"Failed to parse JSONB field '{field_name}': {str(field_value)[:100]}")

    return parsed


def safe_json_dumps(obj: Any, default_str: str = "{}") -> str:
    """Safely serialize object to JSON string with fallback"""
    try:
        return json.dumps(obj, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"JSON serialization failed: {e}")
        return default_str


# Extraction strategies. Each takes raw model text and returns a dict or None.


def _extract_direct(text: str) -> Optional[dict]:
    return safe_json_parse(text.strip(), expected_type=dict)


def _extract_fenced(text: str) -> Optional[dict]:
    match = JSON_FENCE_PATTERN.search(text)
    if not match:
        return None
    return safe_json_parse(match.group(1), expected_type=dict)


def _extract_braces(text: str) -> Optional[dict]:
    match = JSON_BRACES_PATTERN.search(text)
    if not match:
        return None
    return safe_json_parse(match.group(0), expected_type=dict)


EXTRACTION_STRATEGIES: tuple[tuple[str, Callable[[str], Optional[dict]]], ...] = (
    ("direct", _extract_direct),
    ("fenced", _extract_fenced),
    ("braces", _extract_braces),
)


def extract_json_object(text: Optional[str]) -> Optional[dict]:
    """
    Recover a JSON object from a model's raw text output.

    Strategies are tried in order (direct parse, ```json fence, greedy brace
    span) and the first one yielding a dict wins. The brace strategy is
    best-effort: when the text holds several separate objects the greedy span
    covers all of them and usually fails to parse.

    Returns:
        The parsed object, or None when no strategy succeeds
    """
    if not text or not text.strip():
        return None

    for name, strategy in EXTRACTION_STRATEGIES:
        result = strategy(text)
        if result is not None:
            logger.debug(f"JSON_EXTRACT: recovered object via '{name}' strategy")
            return result

    logger.debug(f"JSON_EXTRACT: no JSON object found in text '{text[:100]}...'")
    return None
