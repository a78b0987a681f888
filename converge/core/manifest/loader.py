"""
Loader del manifiesto declarativo.
Carga YAML, lo valida con modelos Pydantic y lo compila a registro + aristas.

Compilar = evaluar condiciones sobre facts, resolver selectores y secretos,
registrar cada recurso y traducir las cadenas (-> y ~>) a aristas explícitas.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

import yaml
from pydantic import ValidationError as PydanticValidationError

from converge.core.errors import ConfigError, ConvergeError, InvalidAttribute
from converge.core.manifest.conditions import is_selector, resolve_selector, select_declarations
from converge.core.manifest.models import Declaration, Manifest
from converge.core.manifest.validator import parse_chain
from converge.core.resource.models import RELATIONSHIP_PARAMS, Edge, ResourceId
from converge.core.resource.registry import ResourceRegistry
from converge.core.runtime.facts import Facts
from converge.core.runtime.secrets import SecretProvider

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Resultado de compilar un manifiesto para un host concreto."""
    registry: ResourceRegistry
    edges: List[Edge] = field(default_factory=list)
    errors: List[InvalidAttribute] = field(default_factory=list)
    excluded: List[ResourceId] = field(default_factory=list)


def read_manifest(path: Path) -> Manifest:
    """Lee y valida la estructura del manifiesto YAML."""
    if not path.exists():
        raise ConfigError(f"Manifiesto no encontrado: {path}")
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error al parsear YAML {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: el manifiesto debe ser un diccionario")
    try:
        return Manifest(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"{path}: manifiesto inválido:\n{e}") from e


def load_manifest(
    path: Path,
    facts: Optional[Facts] = None,
    secrets: Optional[SecretProvider] = None,
    strict: bool = True,
) -> Catalog:
    """Lee y compila un manifiesto en un solo paso."""
    return compile_manifest(read_manifest(path), facts, secrets, strict=strict)


def compile_manifest(
    manifest: Manifest,
    facts: Optional[Facts] = None,
    secrets: Optional[SecretProvider] = None,
    strict: bool = True,
) -> Catalog:
    """
    Compila el manifiesto para los facts dados.

    Args:
        manifest: Manifiesto validado
        facts: Snapshot del host; decide qué declaraciones aplican
        secrets: Provider de secretos para valores {secret: nombre}
        strict: Si True, un atributo inválido aborta; si False, el recurso queda
            en cuarentena (failed en el reporte, dependientes skipped)

    Returns:
        Catalog con registro, aristas explícitas, errores y recursos excluidos
    """
    facts = facts or Facts()
    selected = select_declarations(manifest.resources, facts)
    selected_ids = {id(d) for d in selected}
    excluded: List[ResourceId] = [
        ResourceId(d.type, d.title) for d in manifest.resources if id(d) not in selected_ids
    ]
    # Un recurso puede declararse en varias variantes excluyentes (when distintos)
    excluded_set: Set[ResourceId] = set(excluded) - {ResourceId(d.type, d.title) for d in selected}

    catalog = Catalog(registry=ResourceRegistry(), excluded=sorted(excluded_set))
    for decl in selected:
        rid = ResourceId(decl.type, decl.title)
        relationships: Dict[str, List[ResourceId]] = {}
        try:
            relationships = _relationships(decl, excluded_set)
            attributes = _resolve_attributes(rid, decl, facts, secrets)
            ensure = _resolve_value(rid, "ensure", decl.ensure, facts, secrets)
            attributes.update(relationships)
            catalog.registry.register(decl.type, decl.title, attributes, ensure)
        except InvalidAttribute as e:
            if strict:
                raise
            catalog.errors.append(e)
            catalog.registry.quarantine(decl.type, decl.title, str(e), relationships)

    for chain in manifest.chains:
        for edge in parse_chain(chain):
            if edge.source in excluded_set or edge.target in excluded_set:
                logger.debug("Arista omitida por recurso excluido: %s", edge)
                continue
            catalog.edges.append(edge)

    logger.info(
        "Manifiesto compilado: %d recursos, %d excluidos por facts, %d aristas explícitas",
        len(catalog.registry), len(catalog.excluded), len(catalog.edges),
    )
    return catalog


def _relationships(decl: Declaration, excluded: Set[ResourceId]) -> Dict[str, List[ResourceId]]:
    """Referencias de metaparámetros, sin las que apuntan a recursos excluidos por facts."""
    result: Dict[str, List[ResourceId]] = {}
    for param in RELATIONSHIP_PARAMS:
        refs = []
        for ref in getattr(decl, param):
            try:
                rid = ResourceId.parse(ref)
            except ConvergeError as e:
                raise InvalidAttribute(decl.reference, param, str(e)) from e
            if rid in excluded:
                logger.debug("%s.%s: se omite %s (excluido por facts)", decl.reference, param, rid)
                continue
            refs.append(rid)
        result[param] = refs
    return result


def _resolve_attributes(
    rid: ResourceId, decl: Declaration, facts: Facts, secrets: Optional[SecretProvider]
) -> Dict[str, Any]:
    return {name: _resolve_value(rid, name, value, facts, secrets) for name, value in decl.attributes.items()}


def _resolve_value(
    rid: ResourceId, name: str, value: Any, facts: Facts, secrets: Optional[SecretProvider]
) -> Any:
    if is_selector(value):
        value = resolve_selector(rid, name, value, facts)
    if isinstance(value, Mapping) and set(value) == {"secret"}:
        if secrets is None:
            raise InvalidAttribute(rid, name, "no hay provider de secretos configurado")
        try:
            return secrets.get(str(value["secret"]))
        except ConvergeError as e:
            raise InvalidAttribute(rid, name, str(e)) from e
    return value
