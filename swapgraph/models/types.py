"""Shared type definitions for swap intent models.

These types are used across intent, proposal and matching code.
"""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

# Fallback expiry for proposals whose participants carry no dated constraint
EPOCH_SENTINEL_ISO = "1970-01-01T00:00:00.000Z"


def validate_non_empty_id(value: Any) -> str:
    """Validate and normalize an identifier (intent id, asset id, actor id).

    Args:
        value: Raw identifier (string or int)

    Returns:
        The stripped identifier string

    Raises:
        ValueError: If the identifier is empty or not a string/int
    """
    if isinstance(value, bool) or not isinstance(value, str | int):
        raise ValueError(f"Identifier must be a string, got {type(value).__name__}")
    text = str(value).strip()
    if not text:
        raise ValueError("Identifier cannot be empty")
    return text


# Intent / asset / actor identifier (non-empty, whitespace stripped)
Identifier = Annotated[
    str,
    BeforeValidator(validate_non_empty_id),
    Field(description="Non-empty identifier string"),
]

# Non-negative USD amount
UsdAmount = Annotated[float, Field(ge=0)]


def parse_iso_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when it cannot be parsed.

    Naive timestamps are interpreted as UTC. A trailing "Z" is accepted.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_now_iso() -> str:
    """Current UTC time in the millisecond ISO format used on the wire."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def edge_key(source_intent_id: str, target_intent_id: str) -> str:
    """Key of a directed compatibility edge ("A>B")."""
    return f"{source_intent_id}>{target_intent_id}"


def cycle_key(intent_ids: list[str] | tuple[str, ...]) -> str:
    """Key of an ordered cycle of intent ids ("A>B>C")."""
    return ">".join(intent_ids)
