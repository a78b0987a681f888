"""
Providers en memoria que registran cada llamada.

Un FakeProvider guarda el estado "actual" por nombre de recurso y anota en un
journal común (op, tipo, clave) para verificar orden y cantidad de invocaciones.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from converge.core.errors import ProviderError
from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import ABSENT, CurrentState, Outcome

Call = Tuple[str, str, str]


class FakeProvider(BaseProvider):
    def __init__(self, name: str, properties: Sequence[str], journal: List[Call]):
        self.name = name
        self.properties = tuple(properties)
        self.journal = journal
        self.state: Dict[str, CurrentState] = {}
        self.fail_on: Set[str] = set()
        self.fail_refresh_on: Set[str] = set()
        self.crash_on: Set[str] = set()

    @staticmethod
    def key(attributes: Mapping[str, Any]) -> str:
        for namevar in ("path", "name", "destination"):
            if namevar in attributes:
                return str(attributes[namevar])
        raise KeyError("sin namevar")

    def calls(self, op: Optional[str] = None) -> List[str]:
        return [key for (o, t, key) in self.journal if t == self.name and (op is None or o == op)]

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        key = self.key(attributes)
        self.journal.append(("read", self.name, key))
        return dict(self.state.get(key, {"ensure": ABSENT}))

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        key = self.key(attributes)
        self.journal.append(("apply", self.name, key))
        if key in self.crash_on:
            raise RuntimeError("explotó")
        if key in self.fail_on:
            raise ProviderError(f"no se pudo aplicar {key}")
        if attributes.get("ensure") == ABSENT:
            self.state.pop(key, None)
        else:
            self.state[key] = {p: attributes[p] for p in self.properties if attributes.get(p) is not None}
        return Outcome("aplicado")

    def refresh(self, attributes: Mapping[str, Any]) -> Outcome:
        key = self.key(attributes)
        self.journal.append(("refresh", self.name, key))
        if key in self.fail_refresh_on:
            raise ProviderError(f"no se pudo refrescar {key}")
        return Outcome("refrescado")
