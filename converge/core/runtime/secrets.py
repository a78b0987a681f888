"""
Secretos: valores opacos que el core transporta sin inspeccionar ni registrar.

Los providers de secretos (ver converge.providers.secrets) implementan SecretProvider;
el manifiesto los resuelve por nombre lógico y el valor viaja como Secret hasta
el provider de recurso que lo necesita (p. ej. la contraseña de rsync).
"""

from typing import Protocol


MASK = "********"


class Secret:
    """Valor sensible; repr/str nunca muestran el contenido."""

    __slots__ = ("name", "_value")

    def __init__(self, name: str, value: str):
        self.name = name
        self._value = value

    def reveal(self) -> str:
        """Devuelve el valor real. Solo para providers que lo entregan al sistema."""
        return self._value

    def __repr__(self) -> str:
        return f"Secret({self.name!r}, {MASK})"

    def __str__(self) -> str:
        return MASK

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Secret):
            return NotImplemented
        return self.name == other.name and self._value == other._value

    def __hash__(self) -> int:
        return hash(("secret", self.name))


class SecretProvider(Protocol):
    """Protocolo: quien entrega credenciales por nombre lógico."""
    def get(self, name: str) -> Secret:
        ...
