"""
Base opcional para providers: implementación por defecto de métodos comunes.

Los providers pueden heredar de aquí o implementar solo el contrato (Protocol).
"""

from typing import Any, Mapping, Sequence

from converge.core.errors import ProviderError
from converge.core.runtime.state import CurrentState, Outcome, default_insync


class BaseProvider:
    """Base opcional para providers; no obligatorio usar herencia."""

    name: str = "base"
    properties: Sequence[str] = ("ensure",)

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        raise ProviderError(f"{self.name}: read_state no implementado")

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        raise ProviderError(f"{self.name}: apply_state no implementado")

    def refresh(self, attributes: Mapping[str, Any]) -> Outcome:
        """Por defecto: re-aplica el estado deseado."""
        return self.apply_state(attributes)

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        """Por defecto: igualdad tolerante (48 == '48')."""
        return default_insync(desired, actual)
