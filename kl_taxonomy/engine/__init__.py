"""Engine Layer - resolution escalation and budget management

This module provides the core engine layer, implementing:
- ResolutionContext: per-request target + session context
- Stage / escalate: ordered stage chain with per-stage timeouts
- BudgetManager: time budget management (children 150s / fields 240s)
- ResolutionResult: standardized result format
- ExecutionStrategy: stage failure classification

ResolutionOrchestrator and CacheAdapter live in their own modules
(`kl_taxonomy.engine.orchestrator`, `kl_taxonomy.engine.cache_adapter`).
"""

from .budget import BudgetConfig, BudgetManager
from .context import ProxyConfig, DeviceProfile, ResolutionContext, SessionContext, SessionCredentials
from .escalation import EscalationOutcome, Stage, StageAttempt, escalate
from .exceptions import EngineError, SessionUnavailableError, StageTimeoutError, StructuralMismatchError
from .result import ResolutionResult, ResolutionStatus
from .strategy import ErrorKind, ExecutionStrategy

__all__ = [
    "BudgetConfig",
    "BudgetManager",
    "ProxyConfig",
    "DeviceProfile",
    "ResolutionContext",
    "SessionContext",
    "SessionCredentials",
    "EscalationOutcome",
    "Stage",
    "StageAttempt",
    "escalate",
    "ResolutionResult",
    "ResolutionStatus",
    "ErrorKind",
    "ExecutionStrategy",
    # Exceptions
    "EngineError",
    "SessionUnavailableError",
    "StageTimeoutError",
    "StructuralMismatchError",
]
