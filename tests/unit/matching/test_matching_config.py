"""Tests for MatchingConfig."""

import pytest

from swapgraph.matching.config import DEFAULT_MATCHING_CONFIG, MatchingConfig


class TestMatchingConfig:
    """Tests for MatchingConfig construction and validation."""

    def test_defaults(self):
        config = MatchingConfig()
        assert config.min_cycle_length == 2
        assert config.max_cycle_length == 3
        assert config.max_enumerated_cycles is None
        assert config.timeout_ms is None
        assert config.exact_component_limit == 18
        assert config.fee_rate == 0.01
        assert config.include_cycle_diagnostics is False
        assert config == DEFAULT_MATCHING_CONFIG

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_MATCHING_CONFIG.fee_rate = 0.5  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_cycle_length": 1},
            {"min_cycle_length": 4, "max_cycle_length": 3},
            {"max_enumerated_cycles": 0},
            {"timeout_ms": 0},
            {"exact_component_limit": -1},
            {"fee_rate": 1.0},
            {"fee_rate": -0.01},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            MatchingConfig(**kwargs)


class TestFromEnv:
    """Tests for MatchingConfig.from_env."""

    def test_empty_env_gives_defaults(self):
        assert MatchingConfig.from_env({}) == MatchingConfig()

    def test_reads_all_variables(self):
        config = MatchingConfig.from_env(
            {
                "SWAPGRAPH_MIN_CYCLE_LENGTH": "3",
                "SWAPGRAPH_MAX_CYCLE_LENGTH": "5",
                "SWAPGRAPH_MAX_ENUMERATED_CYCLES": "10000",
                "SWAPGRAPH_TIMEOUT_MS": "250",
                "SWAPGRAPH_EXACT_COMPONENT_LIMIT": "12",
                "SWAPGRAPH_FEE_RATE": "0.015",
                "SWAPGRAPH_INCLUDE_CYCLE_DIAGNOSTICS": "true",
            }
        )
        assert config == MatchingConfig(
            min_cycle_length=3,
            max_cycle_length=5,
            max_enumerated_cycles=10_000,
            timeout_ms=250,
            exact_component_limit=12,
            fee_rate=0.015,
            include_cycle_diagnostics=True,
        )

    def test_blank_values_ignored(self):
        assert MatchingConfig.from_env({"SWAPGRAPH_TIMEOUT_MS": "  "}).timeout_ms is None

    def test_non_integer_raises(self):
        with pytest.raises(ValueError, match="SWAPGRAPH_MAX_CYCLE_LENGTH"):
            MatchingConfig.from_env({"SWAPGRAPH_MAX_CYCLE_LENGTH": "four"})

    def test_non_number_fee_raises(self):
        with pytest.raises(ValueError, match="SWAPGRAPH_FEE_RATE"):
            MatchingConfig.from_env({"SWAPGRAPH_FEE_RATE": "lots"})

    def test_zero_is_not_treated_as_unset(self):
        """An explicit 0 is validated, not replaced by the default."""
        with pytest.raises(ValueError):
            MatchingConfig.from_env({"SWAPGRAPH_MAX_ENUMERATED_CYCLES": "0"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SWAPGRAPH_MAX_CYCLE_LENGTH", "4")
        assert MatchingConfig.from_env().max_cycle_length == 4
