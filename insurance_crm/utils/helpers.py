import math
import re
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form stored in the database)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def page_to_offset(page: int, size: int) -> int:
    """Translate a 1-based page number into a row offset"""
    return max(page - 1, 0) * size


def total_pages(total: int, size: int) -> int:
    return math.ceil(total / size) if size else 0


def normalize_state_name(state: Optional[str]) -> Optional[str]:
    """
    Normalize a state name to its backend form.
    "Andhra Pradesh" -> "AndhraPradesh", "karnataka" -> "Karnataka"
    """
    if not state or not state.strip():
        return None
    parts = re.split(r"[\s\-_]+", state.strip())
    if len(parts) == 1:
        word = parts[0]
        return word[:1].upper() + word[1:]
    return "".join(p[:1].upper() + p[1:].lower() for p in parts if p)


def format_phone_number(phone: str) -> str:
    """Digits only: removes +, -, spaces, parentheses"""
    return re.sub(r"[^\d]", "", phone)
