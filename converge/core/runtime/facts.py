"""
Facts: instantánea inmutable del host (solo lectura durante toda la corrida).

El core no recolecta facts; los recibe ya construidos (ver converge.providers.facts).
Claves reconocidas para inclusión condicional: os_family, os_major, architecture, selinux.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


KNOWN_FACTS = ("os_family", "os_major", "architecture", "selinux")


@dataclass(frozen=True)
class Facts:
    """Snapshot de facts del host actual."""
    os_family: Optional[str] = None
    os_major: Optional[str] = None
    architecture: Optional[str] = None
    selinux: Optional[str] = None  # "enforcing", "permissive", "disabled"
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Facts":
        """Construye Facts desde un dict plano; claves desconocidas van a extra."""
        known: Dict[str, Optional[str]] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in KNOWN_FACTS:
                known[key] = None if value is None else str(value)
            else:
                extra[key] = value
        return cls(**known, extra=MappingProxyType(extra))

    def get(self, key: str, default: Any = None) -> Any:
        if key in KNOWN_FACTS:
            value = getattr(self, key)
            return default if value is None else value
        return self.extra.get(key, default)

    def merged(self, overrides: Mapping[str, Any]) -> "Facts":
        """Devuelve un nuevo snapshot con overrides aplicados (p. ej. --fact de la CLI)."""
        data = self.as_dict()
        data.update(overrides)
        return Facts.from_mapping(data)

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {key: getattr(self, key) for key in KNOWN_FACTS}
        data.update(self.extra)
        return data
