"""
Contratos que deben implementar los providers de capacidad (uno por tipo de recurso).

El core solo define interfaces; la implementación vive en converge/providers/*.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from converge.core.errors import ConvergeError
from converge.core.runtime.state import CurrentState, Outcome


class ProviderContract(Protocol):
    """
    Contrato mínimo de un provider (file, service, user, package, etc.).
    Los errores se señalizan con ProviderError; el Scheduler los registra como failed.
    """
    @property
    def name(self) -> str:
        """Tipo de recurso que atiende (ej: file, service)."""
        ...

    @property
    def properties(self) -> Sequence[str]:
        """Propiedades que el core compara entre deseado y real."""
        ...

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        """Lee el estado actual del host para este recurso."""
        ...

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        """Lleva el host al estado deseado."""
        ...


class ProviderRegistry:
    """Mapa tipo de recurso -> provider."""

    def __init__(self, providers: Iterable[ProviderContract] = ()):
        self._providers: Dict[str, ProviderContract] = {}
        for provider in providers:
            self.add(provider)

    def add(self, provider: ProviderContract, name: Optional[str] = None) -> None:
        self._providers[(name or provider.name).lower()] = provider

    def get(self, type_name: str) -> ProviderContract:
        try:
            return self._providers[type_name.lower()]
        except KeyError:
            raise ConvergeError(f"No hay provider para el tipo de recurso: {type_name}") from None

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and type_name.lower() in self._providers

    def names(self) -> List[str]:
        return sorted(self._providers)
