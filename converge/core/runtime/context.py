"""
RunContext: estado de una sola pasada de convergencia.

Se crea al inicio de la corrida y se descarta al final; nada persiste en memoria
entre invocaciones. Los facts son de solo lectura; el conjunto de notificaciones
pendientes solo lo muta el Scheduler.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from converge.core.resource.models import ResourceId
from converge.core.runtime.facts import Facts

if TYPE_CHECKING:
    from converge.core.engine.report import ExecutionResult


class RunContext:
    """Contexto de la corrida actual."""

    def __init__(self, facts: Optional[Facts] = None, noop: bool = False):
        self.facts = facts or Facts()
        self.noop = noop
        self.started_at = datetime.now(timezone.utc)
        # dict como conjunto ordenado: deduplica por ResourceId y conserva orden de llegada
        self._pending: Dict[ResourceId, List[ResourceId]] = {}
        self.results: Dict[ResourceId, "ExecutionResult"] = {}
        self.log: List["ExecutionResult"] = []

    def notify(self, target: ResourceId, source: ResourceId) -> None:
        self._pending.setdefault(target, []).append(source)

    @property
    def pending(self) -> List[ResourceId]:
        return list(self._pending)

    def notified_by(self, target: ResourceId) -> List[ResourceId]:
        return list(self._pending.get(target, []))

    def record(self, result: "ExecutionResult") -> None:
        """Agrega al log ordenado y fija el resultado final del recurso."""
        self.log.append(result)
        self.results[result.resource_id] = result
