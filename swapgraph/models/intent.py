"""Pydantic models for swap intents and pairwise preference edges.

Field names follow the marketplace wire format (snake_case), e.g.:

    {
      "id": "intent_a",
      "actor": {"type": "user", "id": "u1"},
      "offer": [{"platform": "steam", "asset_id": "ak47_redline"}],
      "want_spec": {"type": "set", "any_of": [{"type": "category", "category": "knife"}]},
      "value_band": {"min_usd": 80, "max_usd": 140},
      "trust_constraints": {"max_cycle_length": 3},
      "time_constraints": {"expires_at": "2027-01-01T00:00:00.000Z"}
    }
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from swapgraph.models.types import Identifier, UsdAmount, parse_iso_timestamp


class IntentStatus(str, Enum):
    """Lifecycle state of an intent. Only active intents are matched."""

    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    FILLED = "filled"


class WantClauseType(str, Enum):
    """Kinds of want clauses understood by the matcher."""

    SPECIFIC_ASSET = "specific_asset"
    CATEGORY = "category"


class EdgeIntentType(str, Enum):
    """Kinds of explicit pairwise edges."""

    ALLOW = "allow"
    PREFER = "prefer"
    BLOCK = "block"


def _validate_iso(value: str | None) -> str | None:
    if value is not None and parse_iso_timestamp(value) is None:
        raise ValueError(f"Invalid ISO-8601 timestamp: '{value}'")
    return value


class Actor(BaseModel):
    """The party behind an intent."""

    type: str = "user"
    id: Identifier

    model_config = {"frozen": True}


class Asset(BaseModel):
    """An item offered in an intent.

    Only `asset_id` identifies the asset for valuation. Unknown fields are
    kept so platform-specific data survives a round trip.
    """

    platform: str
    asset_id: Identifier
    app_id: int | str | None = None
    context_id: int | str | None = None
    class_id: str | None = None
    instance_id: str | None = None
    category: str | None = None
    value_usd: UsdAmount | None = None
    estimated_value_usd: UsdAmount | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow", "frozen": True}

    @property
    def asset_key(self) -> str:
        """Platform-qualified key ("steam:12345")."""
        return f"{self.platform}:{self.asset_id}"

    @property
    def effective_category(self) -> str | None:
        """Category from the top level, falling back to metadata."""
        if self.category is not None:
            return self.category
        category = self.metadata.get("category")
        return str(category) if category is not None else None


class WantClause(BaseModel):
    """One acceptable alternative inside a want spec.

    Clause types other than those in WantClauseType are accepted at the
    boundary but never match anything.
    """

    type: str
    platform: str | None = None
    app_id: int | str | None = None
    asset_key: str | None = None
    asset_id: str | None = None
    category: str | None = None
    constraints: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class WantSpec(BaseModel):
    """Disjunction of want clauses: any one matching offered asset suffices."""

    type: str = "set"
    any_of: list[WantClause] = Field(default_factory=list)

    model_config = {"frozen": True}


class ValueBand(BaseModel):
    """Acceptable USD value range for what the intent receives."""

    min_usd: UsdAmount | None = None
    max_usd: UsdAmount | None = None
    pricing_source: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_bounds(self) -> "ValueBand":
        if self.min_usd is not None and self.max_usd is not None and self.min_usd > self.max_usd:
            raise ValueError(f"min_usd ({self.min_usd}) exceeds max_usd ({self.max_usd})")
        return self

    def contains(self, value_usd: float) -> bool:
        """Check whether a value lies inside the band (open bounds are unlimited)."""
        if self.min_usd is not None and value_usd < self.min_usd:
            return False
        if self.max_usd is not None and value_usd > self.max_usd:
            return False
        return True


class TrustConstraints(BaseModel):
    """Trust-related limits an intent places on the cycles it joins."""

    max_cycle_length: int | None = Field(default=None, ge=2)
    min_counterparty_reliability: float | None = Field(default=None, ge=0, le=1)

    model_config = {"frozen": True}


class TimeConstraints(BaseModel):
    """Time-related limits on an intent."""

    expires_at: str | None = None
    urgency: str | None = None

    model_config = {"frozen": True}

    @field_validator("expires_at")
    @classmethod
    def check_expires_at(cls, value: str | None) -> str | None:
        return _validate_iso(value)


class SwapIntent(BaseModel):
    """An actor's offer together with what it accepts in return."""

    id: Identifier
    actor: Actor
    offer: list[Asset] = Field(min_length=1)
    want_spec: WantSpec = Field(default_factory=WantSpec)
    value_band: ValueBand = Field(default_factory=ValueBand)
    trust_constraints: TrustConstraints = Field(default_factory=TrustConstraints)
    time_constraints: TimeConstraints = Field(default_factory=TimeConstraints)
    settlement_preferences: dict[str, Any] = Field(default_factory=dict)
    status: str = IntentStatus.ACTIVE.value

    model_config = {"frozen": True}

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if value is None:
            return IntentStatus.ACTIVE.value
        return str(value).strip().lower()


class EdgeIntent(BaseModel):
    """An explicit allow/prefer/block statement about one directed pair.

    `source_intent_id` accepts receiving from `target_intent_id` (allow,
    prefer) or refuses to (block). Rows are intentionally loose: rows that
    are inactive, expired, self-referencing or of unknown type are skipped by
    the graph builder instead of failing validation.
    """

    source_intent_id: str
    target_intent_id: str
    intent_type: str
    strength: float | None = None
    status: str = "active"
    expires_at: str | None = None

    model_config = {"frozen": True}


__all__ = [
    "Actor",
    "Asset",
    "EdgeIntent",
    "EdgeIntentType",
    "IntentStatus",
    "SwapIntent",
    "TimeConstraints",
    "TrustConstraints",
    "ValueBand",
    "WantClause",
    "WantClauseType",
    "WantSpec",
]
