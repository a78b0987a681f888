"""
Registro de recursos: declaraciones tipadas indexadas por (tipo, título).

Valida atributos al registrar (rutas absolutas, coerción bool/int, pertenencia de
ensure) y falla rápido con InvalidAttribute en lugar de esperar a la ejecución.
Sin efectos fuera de la memoria.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from converge.core.errors import DuplicateResource, InvalidAttribute, UnknownResource, ValidationError
from converge.core.resource.models import RELATIONSHIP_PARAMS, Resource, ResourceId
from converge.core.resource.types import SCHEMAS, ResourceSchema

logger = logging.getLogger(__name__)


def _first_error(resource: ResourceId, exc: PydanticValidationError) -> InvalidAttribute:
    """Convierte el primer error de Pydantic en InvalidAttribute(resource, field, reason)."""
    errors = exc.errors()
    if not errors:
        return InvalidAttribute(resource, "__all__", str(exc))
    err = errors[0]
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else "__all__"
    reason = str(err.get("msg", "valor inválido"))
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]
    return InvalidAttribute(resource, field, reason)


def _references(resource: ResourceId, param: str, value: Any) -> List[ResourceId]:
    if value is None:
        return []
    if isinstance(value, (str, ResourceId)):
        value = [value]
    refs: List[ResourceId] = []
    for item in value:
        try:
            refs.append(ResourceId.parse(item))
        except ValidationError as e:
            raise InvalidAttribute(resource, param, str(e)) from e
    return refs


class ResourceRegistry:
    """Contiene las declaraciones de una corrida, en orden de declaración."""

    def __init__(self, schemas: Optional[Mapping[str, Type[ResourceSchema]]] = None):
        self.schemas: Dict[str, Type[ResourceSchema]] = dict(schemas or SCHEMAS)
        self._resources: Dict[ResourceId, Resource] = {}

    def register(
        self,
        type: str,
        title: str,
        attributes: Optional[Mapping[str, Any]] = None,
        ensure: Optional[str] = None,
    ) -> ResourceId:
        """
        Registra un recurso validado.

        Args:
            type: Tipo de recurso (file, service, user...)
            title: Título único dentro del tipo
            attributes: Atributos del recurso; puede incluir require/before/notify/subscribe
            ensure: Estado deseado; si es None se usa el default del tipo

        Returns:
            ResourceId del recurso registrado

        Raises:
            DuplicateResource: si (tipo, título) ya existe
            InvalidAttribute: si algún atributo no supera la validación
        """
        rid = ResourceId(type, str(title))
        if rid in self._resources:
            raise DuplicateResource(rid)

        data = dict(attributes or {})
        relationships = {param: _references(rid, param, data.pop(param, None)) for param in RELATIONSHIP_PARAMS}
        if "ensure" in data:
            if ensure is None:
                ensure = data["ensure"]
            del data["ensure"]

        schema = self.schemas.get(rid.type)
        if schema is None:
            raise InvalidAttribute(rid, "type", f"tipo de recurso desconocido: {rid.type}")

        data.setdefault(schema.namevar, rid.title)
        if ensure is not None:
            data["ensure"] = ensure
        try:
            model = schema(**data)
        except PydanticValidationError as e:
            raise _first_error(rid, e) from e

        validated = model.model_dump(exclude_none=True)
        resource = Resource(
            id=rid,
            attributes={k: v for k, v in validated.items() if k != "ensure"},
            ensure=validated.get("ensure"),
            index=len(self._resources),
            **relationships,
        )
        self._resources[rid] = resource
        logger.debug("Registrado %s", rid)
        return rid

    def quarantine(
        self,
        type: str,
        title: str,
        error: str,
        relationships: Optional[Mapping[str, Any]] = None,
    ) -> ResourceId:
        """
        Registra una declaración inválida para que la corrida la reporte como failed
        y salte a sus dependientes, sin invocar providers.
        """
        rid = ResourceId(type, str(title))
        if rid in self._resources:
            raise DuplicateResource(rid)
        rels = relationships or {}
        parsed: Dict[str, List[ResourceId]] = {}
        for param in RELATIONSHIP_PARAMS:
            try:
                parsed[param] = _references(rid, param, rels.get(param))
            except InvalidAttribute:
                parsed[param] = []
        self._resources[rid] = Resource(
            id=rid, attributes={}, ensure=None, index=len(self._resources), error=error, **parsed
        )
        logger.warning("Recurso en cuarentena %s: %s", rid, error)
        return rid

    def get(self, rid: ResourceId) -> Resource:
        try:
            return self._resources[rid]
        except KeyError:
            raise UnknownResource(rid) from None

    def ids(self) -> List[ResourceId]:
        return list(self._resources)

    def extend(self, declarations: Iterable[Mapping[str, Any]]) -> List[ResourceId]:
        """Registra varias declaraciones {type, title, attributes, ensure}."""
        return [
            self.register(d["type"], d["title"], d.get("attributes"), d.get("ensure"))
            for d in declarations
        ]

    def __contains__(self, rid: object) -> bool:
        return rid in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)
