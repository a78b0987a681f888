"""
Contratos de estado: diferencia deseado vs real y resultado de una acción.

El core NO lee ni escribe el estado real del host; eso lo hacen los providers
(read_state/apply_state). Aquí solo se define cómo se comparan ambos estados.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence


# Estado actual tal como lo devuelve read_state: propiedad -> valor observado
CurrentState = Dict[str, Any]

ABSENT = "absent"


class StateDiff:
    """Diferencia entre estado deseado y real (agnóstico de provider)."""
    def __init__(
        self,
        resource_id: Any,
        field: str,
        desired: Any,
        actual: Any,
        severity: str = "warning"
    ):
        self.resource_id = resource_id
        self.field = field
        self.desired = desired
        self.actual = actual
        self.severity = severity  # "error" (ensure), "warning" (propiedad)

    def __repr__(self) -> str:
        return f"StateDiff({self.resource_id}.{self.field}: {self.actual!r} -> {self.desired!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StateDiff):
            return NotImplemented
        return (
            self.resource_id == other.resource_id
            and self.field == other.field
            and self.desired == other.desired
            and self.actual == other.actual
        )

    def as_dict(self) -> Dict[str, Any]:
        # str() enmascara valores Secret
        return {
            "field": self.field,
            "desired": _plain(self.desired),
            "actual": _plain(self.actual),
            "severity": self.severity,
        }


@dataclass
class Outcome:
    """Resultado de apply_state/refresh cuando el provider no falla."""
    message: str = ""
    changed: bool = True


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


def default_insync(desired: Any, actual: Any) -> bool:
    """Igualdad tolerante: 48 == "48", True == "true"."""
    if desired == actual:
        return True
    if actual is None:
        return False
    return str(desired).lower() == str(actual).lower()


def diff_state(
    resource_id: Any,
    properties: Sequence[str],
    desired: Mapping[str, Any],
    current: Mapping[str, Any],
    insync: Optional[Callable[[str, Any, Any], bool]] = None,
) -> List[StateDiff]:
    """
    Compara las propiedades gestionadas de un recurso.

    Solo se comparan propiedades con valor deseado distinto de None; "ensure" va primero.
    Si el recurso debe estar ausente (o aún no existe), solo se compara "ensure".
    """
    check = insync or (lambda _prop, want, have: default_insync(want, have))
    diffs: List[StateDiff] = []

    want_ensure = desired.get("ensure")
    have_ensure = current.get("ensure")
    if want_ensure is not None and not check("ensure", want_ensure, have_ensure):
        diffs.append(StateDiff(resource_id, "ensure", want_ensure, have_ensure, "error"))

    if want_ensure == ABSENT or have_ensure == ABSENT or diffs:
        return diffs

    for prop in properties:
        if prop == "ensure":
            continue
        want = desired.get(prop)
        if want is None:
            continue
        have = current.get(prop)
        if not check(prop, want, have):
            diffs.append(StateDiff(resource_id, prop, want, have))
    return diffs
