"""Engine: live orchestration loop and historical replay."""

from paper_trader.engine.orchestrator import EngineState, Orchestrator, build_orchestrator
from paper_trader.engine.replay import ReplayResult, ReplayRunner, load_history

__all__ = ["EngineState", "Orchestrator", "build_orchestrator", "ReplayResult", "ReplayRunner", "load_history"]
