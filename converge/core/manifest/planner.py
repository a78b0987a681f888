"""
Planificación: describe qué cambiaría una corrida (sin ejecutar).

Lógica pura: entrada = reporte de una corrida noop (o sus StateDiff);
salida = lista de acciones legibles para mostrar en CLI.
"""

from typing import List

from converge.core.engine.report import ResourceStatus, RunReport
from converge.core.runtime.state import StateDiff


def plan_from_diffs(diffs: List[StateDiff]) -> List[str]:
    """
    Convierte una lista de StateDiff en acciones legibles.
    No ejecuta nada.
    """
    actions: List[str] = []
    for d in diffs:
        if d.severity == "error":
            actions.append(f"Crear/actualizar {d.resource_id}: {d.field} = {d.desired}")
        elif d.desired != d.actual:
            actions.append(f"Actualizar {d.resource_id}.{d.field}: {d.actual} → {d.desired}")
    return actions


def plan_from_report(report: RunReport) -> List[str]:
    """Acciones de un reporte noop: cambios pendientes y refresh que se dispararían."""
    actions: List[str] = []
    for entry in report.log:
        if entry.status != ResourceStatus.NOOP:
            continue
        if entry.action == "refresh":
            actions.append(f"Refrescar {entry.resource_id} ({entry.message})")
        else:
            actions.extend(plan_from_diffs(entry.changes))
    return actions
