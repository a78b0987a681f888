"""
Run Report: agrega los resultados por recurso de una pasada de convergencia.

Expone el log ordenado (una entrada por acción apply/refresh), el resultado final
por recurso, conteos y el estado global de la corrida.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from converge.core.resource.models import ResourceId
from converge.core.runtime.facts import Facts
from converge.core.runtime.state import StateDiff


UPSTREAM_FAILED = "upstream_failed"
RUN_ABORTED = "run_aborted"


class ResourceStatus(str, Enum):
    """Resultado de ejecutar un recurso"""
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOOP = "noop"  # habría cambiado (modo noop)


class RunStatus(str, Enum):
    """Estado global: el peor resultado observado"""
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"


@dataclass
class ExecutionResult:
    """Resultado de una acción (apply o refresh) sobre un recurso."""
    resource_id: ResourceId
    status: ResourceStatus
    action: str = "apply"
    reason: Optional[str] = None
    changes: List[StateDiff] = field(default_factory=list)
    message: str = ""
    duration: float = 0.0

    @property
    def is_failed(self) -> bool:
        return self.status == ResourceStatus.FAILED

    @property
    def is_changed(self) -> bool:
        return self.status in (ResourceStatus.CHANGED, ResourceStatus.NOOP)

    def __str__(self) -> str:
        text = f"{self.resource_id} {self.action}: {self.status.value}"
        if self.reason:
            text += f" ({self.reason})"
        return text

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "resource": str(self.resource_id),
            "action": self.action,
            "status": self.status.value,
            "duration": round(self.duration, 4),
        }
        if self.reason:
            data["reason"] = self.reason
        if self.message:
            data["message"] = self.message
        if self.changes:
            data["changes"] = [d.as_dict() for d in self.changes]
        return data


class RunReport:
    """Reporte de una corrida."""

    def __init__(
        self,
        log: List[ExecutionResult],
        results: Dict[ResourceId, ExecutionResult],
        facts: Optional[Facts] = None,
        noop: bool = False,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ):
        self.log = list(log)
        self.results = dict(results)
        self.facts = facts or Facts()
        self.noop = noop
        self.started_at = started_at
        self.finished_at = finished_at

    @property
    def status(self) -> RunStatus:
        if any(r.is_failed for r in self.results.values()):
            return RunStatus.FAILED
        if any(r.is_changed for r in self.results.values()):
            return RunStatus.CHANGED
        return RunStatus.UNCHANGED

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ResourceStatus}
        for result in self.results.values():
            counts[result.status.value] += 1
        counts["total"] = len(self.results)
        return counts

    def failures(self) -> List[ExecutionResult]:
        return [r for r in self.results.values() if r.is_failed]

    def changed(self) -> List[ExecutionResult]:
        return [r for r in self.results.values() if r.is_changed]

    def status_of(self, rid: ResourceId) -> ResourceStatus:
        return self.results[rid].status

    def entries_for(self, rid: ResourceId) -> List[ExecutionResult]:
        return [r for r in self.log if r.resource_id == rid]

    def exit_code(self, detailed: bool = False) -> int:
        """
        Código de salida de la corrida.
        Sin detailed: 1 si hubo fallos, 0 si no.
        Con detailed: 0 sin cambios, 2 con cambios, 4 con fallos, 6 cambios y fallos.
        """
        failed = any(r.is_failed for r in self.results.values())
        if not detailed:
            return 1 if failed else 0
        changed = any(r.is_changed for r in self.results.values())
        return (2 if changed else 0) | (4 if failed else 0)

    @property
    def duration(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "noop": self.noop,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration": round(self.duration, 4),
            "facts": {k: v for k, v in self.facts.as_dict().items() if v is not None},
            "summary": self.counts(),
            "resources": {str(rid): r.status.value for rid, r in self.results.items()},
            "log": [r.as_dict() for r in self.log],
        }
