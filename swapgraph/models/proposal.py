"""Pydantic models for matching requests, cycle proposals and run results."""

from enum import Enum

from pydantic import BaseModel, Field

from swapgraph.models.intent import Actor, Asset, EdgeIntent, SwapIntent
from swapgraph.models.types import UsdAmount


class Participant(BaseModel):
    """One seat in a cycle: what the intent gives and what it gets."""

    intent_id: str
    actor: Actor
    give: list[Asset]
    get: list[Asset]

    model_config = {"frozen": True}


class FeeLine(BaseModel):
    """Fee charged to one participant, in USD rounded to cents."""

    actor: Actor
    fee_usd: float

    model_config = {"frozen": True}


class CycleProposal(BaseModel):
    """A scored, fee'd and explainable instance of one cycle.

    The id depends only on the ordered intent ids of the cycle, so the same
    cycle always yields the same proposal id.
    """

    id: str
    expires_at: str
    participants: list[Participant]
    confidence_score: float = Field(ge=0, le=1)
    value_spread: float = Field(ge=0)
    fee_breakdown: list[FeeLine]
    explainability: list[str] = Field(min_length=1)

    model_config = {"frozen": True}

    @property
    def intent_ids(self) -> list[str]:
        """Participant intent ids in cycle order."""
        return [p.intent_id for p in self.participants]


class SelectionReason(str, Enum):
    """Why a candidate was or was not selected."""

    PICKED = "picked"
    CONFLICT_SHARED_INTENT = "conflict_shared_intent"
    NOT_SELECTED_OPTIMIZER = "not_selected_optimizer"


class SelectionTraceEntry(BaseModel):
    """Audit row for one candidate proposal."""

    cycle: list[str]
    proposal_id: str
    score: float
    selected: bool
    reason: SelectionReason


class MatchingStats(BaseModel):
    """Counters describing one matching run.

    The cycle enumeration flags are only set when diagnostics were requested.
    """

    intents_active: int
    edges: int
    candidate_cycles: int
    candidate_proposals: int
    selected_proposals: int
    cycle_enumeration_limited: bool | None = None
    cycle_enumeration_timed_out: bool | None = None


class MatchingRequest(BaseModel):
    """Input of a matching run.

    Unset tuning fields fall back to the engine's MatchingConfig. CamelCase
    aliases are accepted alongside the snake_case names.
    """

    intents: list[SwapIntent] = Field(default_factory=list)
    asset_values_usd: dict[str, UsdAmount] = Field(default_factory=dict, alias="assetValuesUsd")
    edge_intents: list[EdgeIntent] = Field(default_factory=list, alias="edgeIntents")
    now_iso: str | None = Field(default=None, alias="nowIso")
    min_cycle_length: int | None = Field(default=None, alias="minCycleLength")
    max_cycle_length: int | None = Field(default=None, alias="maxCycleLength")
    max_enumerated_cycles: int | None = Field(default=None, alias="maxEnumeratedCycles")
    timeout_ms: int | None = Field(default=None, alias="timeoutMs")
    include_cycle_diagnostics: bool | None = Field(default=None, alias="includeCycleDiagnostics")
    max_proposals: int | None = Field(default=None, ge=1, alias="maxProposals")
    derive_asset_values: bool = Field(default=True, alias="deriveAssetValues")

    model_config = {"populate_by_name": True}


class MatchingResult(BaseModel):
    """Output of a matching run."""

    proposals: list[CycleProposal]
    trace: list[SelectionTraceEntry]
    stats: MatchingStats


__all__ = [
    "CycleProposal",
    "FeeLine",
    "MatchingRequest",
    "MatchingResult",
    "MatchingStats",
    "Participant",
    "SelectionReason",
    "SelectionTraceEntry",
]
