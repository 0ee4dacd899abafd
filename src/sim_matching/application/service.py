# src/sim_matching/application/service.py
from src.sim_matching.engine.engine import MatchingEngine

_engine: MatchingEngine | None = None


def get_matching_engine() -> MatchingEngine:
    """Process-wide engine shared by the API, the tick engine and bots."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = MatchingEngine()
    return _engine
