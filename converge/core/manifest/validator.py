"""
Validación de manifiestos (lógica pura).

Sin I/O; solo reglas sobre estructuras de datos ya leídas del YAML.
"""

import re
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from converge.core.errors import ValidationError
from converge.core.manifest.models import Manifest
from converge.core.resource.models import Edge, EdgeKind, ResourceId
from converge.core.resource.types import SCHEMAS


_ARROW_RE = re.compile(r"\s*(->|~>)\s*")


def parse_chain(expression: str) -> List[Edge]:
    """
    Convierte 'A -> B ~> C' en aristas [A->B (order), B->C (notify)].

    Raises:
        ValidationError: si la cadena está vacía, mal formada o tiene referencias inválidas
    """
    parts = _ARROW_RE.split(expression.strip())
    if len(parts) < 3 or len(parts) % 2 == 0:
        raise ValidationError(f"Cadena inválida: {expression!r} (se esperan al menos dos referencias)")
    refs = [ResourceId.parse(p) for p in parts[0::2]]
    arrows = parts[1::2]
    edges: List[Edge] = []
    for source, arrow, target in zip(refs, arrows, refs[1:]):
        kind = EdgeKind.NOTIFY if arrow == "~>" else EdgeKind.ORDER
        edges.append(Edge(source, target, kind))
    return edges


def validate_manifest_data(data: Any) -> List[str]:
    """
    Valida un manifiesto ya parseado (dict).
    Devuelve lista de mensajes de error; si vacía, es válido estructuralmente.
    Los atributos por tipo se validan al registrar (ver ResourceRegistry).
    """
    errors: List[str] = []
    if not isinstance(data, dict):
        return ["El manifiesto debe ser un diccionario"]
    try:
        manifest = Manifest(**data)
    except PydanticValidationError as e:
        for err in e.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()))
            errors.append(f"{loc}: {err.get('msg')}")
        return errors

    seen: Dict[ResourceId, int] = {}
    for i, decl in enumerate(manifest.resources):
        if decl.type not in SCHEMAS:
            errors.append(f"resources.{i}: tipo de recurso desconocido '{decl.type}'")
        rid = ResourceId(decl.type, decl.title)
        if rid in seen and not decl.when and not manifest.resources[seen[rid]].when:
            errors.append(f"resources.{i}: {rid} duplicado (ya declarado en resources.{seen[rid]})")
        seen.setdefault(rid, i)
        for param in ("require", "before", "notify", "subscribe"):
            for ref in getattr(decl, param):
                try:
                    ResourceId.parse(ref)
                except ValidationError as e:
                    errors.append(f"resources.{i}.{param}: {e}")

    for i, chain in enumerate(manifest.chains):
        try:
            parse_chain(chain)
        except ValidationError as e:
            errors.append(f"chains.{i}: {e}")
    return errors
