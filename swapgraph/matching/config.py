"""Matching configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from swapgraph.matching.cycles import DEFAULT_MAX_CYCLE_LENGTH, DEFAULT_MIN_CYCLE_LENGTH
from swapgraph.matching.proposals import DEFAULT_FEE_RATE
from swapgraph.matching.selection import EXACT_COMPONENT_LIMIT

ENV_PREFIX = "SWAPGRAPH_"


@dataclass(frozen=True)
class MatchingConfig:
    """Defaults for matching runs.

    Request fields override these per run; unset request fields fall back
    to the values here.

    Attributes:
        min_cycle_length: Shortest cycle considered (default: 2)
        max_cycle_length: Longest cycle considered (default: 3)
        max_enumerated_cycles: Cycle enumeration cap (default: unlimited)
        timeout_ms: Cycle enumeration wall-clock budget (default: unlimited)
        exact_component_limit: Largest conflict component solved exactly (default: 18)
        fee_rate: Fraction of received value charged as fee (default: 1%)
        include_cycle_diagnostics: Report safety valve flags in stats (default: False)
    """

    min_cycle_length: int = DEFAULT_MIN_CYCLE_LENGTH
    max_cycle_length: int = DEFAULT_MAX_CYCLE_LENGTH
    max_enumerated_cycles: int | None = None
    timeout_ms: int | None = None
    exact_component_limit: int = EXACT_COMPONENT_LIMIT
    fee_rate: float = DEFAULT_FEE_RATE
    include_cycle_diagnostics: bool = False

    def __post_init__(self) -> None:
        if self.min_cycle_length < 2:
            raise ValueError(f"min_cycle_length must be >= 2, got {self.min_cycle_length}")
        if self.max_cycle_length < self.min_cycle_length:
            raise ValueError(
                f"max_cycle_length ({self.max_cycle_length}) must be >= "
                f"min_cycle_length ({self.min_cycle_length})"
            )
        if self.max_enumerated_cycles is not None and self.max_enumerated_cycles < 1:
            raise ValueError(
                f"max_enumerated_cycles must be >= 1, got {self.max_enumerated_cycles}"
            )
        if self.timeout_ms is not None and self.timeout_ms < 1:
            raise ValueError(f"timeout_ms must be >= 1, got {self.timeout_ms}")
        if self.exact_component_limit < 0:
            raise ValueError(
                f"exact_component_limit must be >= 0, got {self.exact_component_limit}"
            )
        if not 0 <= self.fee_rate < 1:
            raise ValueError(f"fee_rate must be in [0, 1), got {self.fee_rate}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MatchingConfig:
        """Build a config from SWAPGRAPH_* environment variables.

        Supported variables: SWAPGRAPH_MIN_CYCLE_LENGTH, SWAPGRAPH_MAX_CYCLE_LENGTH,
        SWAPGRAPH_MAX_ENUMERATED_CYCLES, SWAPGRAPH_TIMEOUT_MS,
        SWAPGRAPH_EXACT_COMPONENT_LIMIT, SWAPGRAPH_FEE_RATE,
        SWAPGRAPH_INCLUDE_CYCLE_DIAGNOSTICS. Unset variables keep defaults.

        Raises:
            ValueError: If a variable is set to an invalid value
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def read_int(name: str) -> int | None:
            raw = env.get(ENV_PREFIX + name, "").strip()
            if not raw:
                return None
            try:
                return int(raw)
            except ValueError as err:
                raise ValueError(f"{ENV_PREFIX}{name} must be an integer: '{raw}'") from err

        raw_fee = env.get(ENV_PREFIX + "FEE_RATE", "").strip()
        try:
            fee_rate = float(raw_fee) if raw_fee else defaults.fee_rate
        except ValueError as err:
            raise ValueError(f"{ENV_PREFIX}FEE_RATE must be a number: '{raw_fee}'") from err

        raw_diag = env.get(ENV_PREFIX + "INCLUDE_CYCLE_DIAGNOSTICS", "").strip().lower()

        min_len = read_int("MIN_CYCLE_LENGTH")
        max_len = read_int("MAX_CYCLE_LENGTH")
        exact_limit = read_int("EXACT_COMPONENT_LIMIT")

        return cls(
            min_cycle_length=defaults.min_cycle_length if min_len is None else min_len,
            max_cycle_length=defaults.max_cycle_length if max_len is None else max_len,
            max_enumerated_cycles=read_int("MAX_ENUMERATED_CYCLES"),
            timeout_ms=read_int("TIMEOUT_MS"),
            exact_component_limit=(
                defaults.exact_component_limit if exact_limit is None else exact_limit
            ),
            fee_rate=fee_rate,
            include_cycle_diagnostics=raw_diag in ("true", "1", "yes"),
        )


# Default configuration instance
DEFAULT_MATCHING_CONFIG = MatchingConfig()

__all__ = ["DEFAULT_MATCHING_CONFIG", "ENV_PREFIX", "MatchingConfig"]
