"""Session orchestration components."""

from .capabilities import CapabilityBundle
from .runner import RunReport, RunState, SessionOrchestrator, run_automation

__all__ = ["CapabilityBundle", "RunReport", "RunState", "SessionOrchestrator", "run_automation"]
