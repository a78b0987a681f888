"""
Modelo de datos de recursos y aristas.

Un recurso se identifica por (tipo, título), único dentro de una corrida.
Se crea una vez a partir de declaraciones estáticas y no se muta después de
construir el grafo, salvo para registrar el resultado de su ejecución.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from converge.core.errors import ValidationError

if TYPE_CHECKING:
    from converge.core.engine.report import ExecutionResult


# File[/etc/httpd], Service['httpd'], package["mod_ssl"]
_REFERENCE_RE = re.compile(r"""^\s*([A-Za-z][A-Za-z0-9_]*)\[\s*(['"]?)(.+?)\2\s*\]\s*$""")

RELATIONSHIP_PARAMS = ("require", "before", "notify", "subscribe")


@dataclass(frozen=True, order=True)
class ResourceId:
    """Identidad de un recurso: tipo (en minúsculas) + título."""
    type: str
    title: str

    def __post_init__(self):
        object.__setattr__(self, "type", self.type.strip().lower())

    @classmethod
    def parse(cls, reference: str) -> "ResourceId":
        """Parsea una referencia tipo 'File[/data]' o "Service['httpd']"."""
        if isinstance(reference, ResourceId):
            return reference
        match = _REFERENCE_RE.match(str(reference))
        if not match:
            raise ValidationError(f"Referencia inválida: {reference!r} (formato esperado: Tipo[título])")
        return cls(match.group(1), match.group(3))

    def __str__(self) -> str:
        return f"{self.type.capitalize()}[{self.title}]"


class EdgeKind(str, Enum):
    """Tipo de arista del grafo"""
    ORDER = "order"    # debe ejecutarse antes
    NOTIFY = "notify"  # debe señalizar (refresh) si cambia


@dataclass(frozen=True)
class Edge:
    """Relación dirigida source -> target."""
    source: ResourceId
    target: ResourceId
    kind: EdgeKind = EdgeKind.ORDER

    def __str__(self) -> str:
        arrow = "~>" if self.kind == EdgeKind.NOTIFY else "->"
        return f"{self.source} {arrow} {self.target}"


@dataclass
class Resource:
    """Unidad declarada de estado deseado."""
    id: ResourceId
    attributes: Dict[str, Any]
    ensure: Optional[str]
    index: int
    require: List[ResourceId] = field(default_factory=list)
    before: List[ResourceId] = field(default_factory=list)
    notify: List[ResourceId] = field(default_factory=list)
    subscribe: List[ResourceId] = field(default_factory=list)
    # Declaración en cuarentena (atributos inválidos en modo lenient)
    error: Optional[str] = None
    result: Optional["ExecutionResult"] = None

    @property
    def type(self) -> str:
        return self.id.type

    @property
    def title(self) -> str:
        return self.id.title

    @property
    def desired(self) -> Dict[str, Any]:
        """Atributos + ensure, tal como los ve el provider."""
        desired = dict(self.attributes)
        if self.ensure is not None:
            desired["ensure"] = self.ensure
        return desired

    def __str__(self) -> str:
        return str(self.id)
