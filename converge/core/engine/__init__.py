"""
Engine: scheduler de convergencia, reporte de corrida y punto de entrada.
"""

from converge.core.engine.report import (
    RUN_ABORTED,
    UPSTREAM_FAILED,
    ExecutionResult,
    ResourceStatus,
    RunReport,
    RunStatus,
)
from converge.core.engine.run import converge
from converge.core.engine.scheduler import Scheduler

__all__ = [
    "ExecutionResult",
    "ResourceStatus",
    "RunReport",
    "RunStatus",
    "RUN_ABORTED",
    "Scheduler",
    "UPSTREAM_FAILED",
    "converge",
]
