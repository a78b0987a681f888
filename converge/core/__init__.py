"""
Core: lógica de convergencia pura.

ENFORCEMENT (arquitectura limpia):
- Este paquete NO debe importar: converge.cli ni providers concretos a nivel de módulo
  (run.converge solo los carga como default perezoso).
- Permitido: typing, pathlib.Path, pydantic, pyyaml (manifiestos), networkx (grafo), converge.core.*.
- Los providers y la CLI importan desde core; nunca al revés.
"""

from converge.core.errors import (
    ConfigError,
    ConvergeError,
    CyclicDependency,
    DuplicateResource,
    InvalidAttribute,
    ProviderError,
    UnknownResource,
    ValidationError,
)

__all__ = [
    "ConfigError",
    "ConvergeError",
    "CyclicDependency",
    "DuplicateResource",
    "InvalidAttribute",
    "ProviderError",
    "UnknownResource",
    "ValidationError",
]
