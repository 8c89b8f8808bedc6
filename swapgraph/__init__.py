"""SwapGraph - multi-party swap intent matching engine."""

from swapgraph.engine import MatchingEngine, get_default_engine, run_matching

__version__ = "0.1.0"
__all__ = ["MatchingEngine", "get_default_engine", "run_matching", "__version__"]
