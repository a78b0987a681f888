"""
Errores del motor de convergencia.

El core solo define excepciones; las capas (CLI/API) se encargan del formato de salida.

Taxonomía:
- Construcción (fatales para la corrida): DuplicateResource, UnknownResource, CyclicDependency.
- Registro: InvalidAttribute (fatal para ese recurso; el manifiesto decide si aborta todo).
- Ejecución: ProviderError (se registra como failed en el reporte, no aborta ramas independientes).
"""

from typing import Any, List, Optional


class ConvergeError(Exception):
    """Error base de converge."""
    pass


class ValidationError(ConvergeError):
    """Error de validación de manifiesto, referencias o modelos."""
    pass


class ConfigError(ConvergeError):
    """Error de configuración (archivo faltante, formato inválido)."""
    pass


class InvalidAttribute(ConvergeError):
    """Atributo inválido detectado al registrar un recurso."""

    def __init__(self, resource: Any, field: str, reason: str):
        self.resource = resource
        self.field = field
        self.reason = reason
        super().__init__(f"{resource}: atributo '{field}' inválido: {reason}")


class DuplicateResource(ConvergeError):
    """El par (tipo, título) ya fue declarado en esta corrida."""

    def __init__(self, resource: Any):
        self.resource = resource
        super().__init__(f"Recurso duplicado: {resource}")


class UnknownResource(ConvergeError):
    """Referencia a un recurso que no existe en el registro."""

    def __init__(self, resource: Any, referenced_by: Optional[Any] = None):
        self.resource = resource
        self.referenced_by = referenced_by
        if referenced_by is not None:
            message = f"Recurso desconocido: {resource} (referenciado desde {referenced_by})"
        else:
            message = f"Recurso desconocido: {resource}"
        super().__init__(message)


class CyclicDependency(ConvergeError):
    """Las aristas de orden forman un ciclo; no se ejecuta nada."""

    def __init__(self, path: List[Any]):
        self.path = list(path)
        chain = " -> ".join(str(p) for p in self.path)
        super().__init__(f"Dependencia cíclica: {chain}")


class ProviderError(ConvergeError):
    """Error delegado desde un provider (file, service, package, etc.)."""
    pass
