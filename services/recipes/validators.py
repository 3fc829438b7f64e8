# services/recipes/validators.py
"""Request field checks shared by the personal-data routes"""

from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import urlparse

from fastapi import HTTPException


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


def require_recipe_id(recipe_id: Any) -> int:
    """Recipe ids must be present and a positive integer"""
    if recipe_id is None or recipe_id == "":
        raise bad_request("Recipe ID is required")
    try:
        value = int(recipe_id)
    except (TypeError, ValueError):
        raise bad_request("Invalid recipe ID format")
    if value <= 0 or (isinstance(recipe_id, float) and not recipe_id.is_integer()):
        raise bad_request("Invalid recipe ID format")
    return value


def require_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise bad_request(f"{field} is required")
    if max_length and len(text) > max_length:
        raise bad_request(f"{field} must be {max_length} characters or less")
    return text


def optional_text(value: Optional[str], field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if len(value) > max_length:
        raise bad_request(f"{field} must be {max_length} characters or less")
    return value


def parse_week_start(value: Optional[str]) -> date:
    """Week starts are ISO dates (YYYY-MM-DD)"""
    if not value:
        raise bad_request("weekStart is required")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise bad_request("weekStart must be in YYYY-MM-DD format")


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
