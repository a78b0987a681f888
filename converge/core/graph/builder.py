"""
Construcción del grafo de dependencias.

Entrada: el registro completo + aristas explícitas (cadenas -> y ~> del manifiesto).
Los metaparámetros de cada recurso se traducen así:
- B.require = [A]    -> ORDER  A -> B
- A.before = [B]     -> ORDER  A -> B
- A.notify = [B]     -> NOTIFY A -> B
- B.subscribe = [A]  -> NOTIFY A -> B

Por defecto una arista NOTIFY implica además una ORDER en el mismo sentido
(notify_implies_order=True). Un ciclo en aristas ORDER es fatal: no se ejecuta nada.
"""

import logging
from typing import Iterable, List

from converge.core.errors import UnknownResource
from converge.core.graph.graph import DependencyGraph
from converge.core.resource.models import Edge, EdgeKind, ResourceId
from converge.core.resource.registry import ResourceRegistry

logger = logging.getLogger(__name__)


def declared_edges(registry: ResourceRegistry) -> List[Edge]:
    """Aristas derivadas de require/before/notify/subscribe, en orden de declaración."""
    edges: List[Edge] = []
    for resource in registry:
        rid = resource.id
        for ref in resource.require:
            edges.append(_checked(registry, Edge(ref, rid, EdgeKind.ORDER), ref, rid))
        for ref in resource.before:
            edges.append(_checked(registry, Edge(rid, ref, EdgeKind.ORDER), ref, rid))
        for ref in resource.notify:
            edges.append(_checked(registry, Edge(rid, ref, EdgeKind.NOTIFY), ref, rid))
        for ref in resource.subscribe:
            edges.append(_checked(registry, Edge(ref, rid, EdgeKind.NOTIFY), ref, rid))
    return edges


def _checked(registry: ResourceRegistry, edge: Edge, ref: ResourceId, owner: ResourceId) -> Edge:
    if ref not in registry:
        raise UnknownResource(ref, referenced_by=owner)
    return edge


def build_graph(
    registry: ResourceRegistry,
    edges: Iterable[Edge] = (),
    notify_implies_order: bool = True,
) -> DependencyGraph:
    """
    Construye y valida el grafo.

    Args:
        registry: Recursos registrados (ya filtrados por condiciones)
        edges: Aristas explícitas adicionales
        notify_implies_order: Si True, cada NOTIFY agrega también una ORDER

    Returns:
        DependencyGraph acíclico en aristas ORDER

    Raises:
        UnknownResource: si una arista referencia un recurso inexistente
        CyclicDependency: si las aristas ORDER forman un ciclo
    """
    graph = DependencyGraph(registry)
    explicit = list(edges)
    for edge in explicit:
        for rid in (edge.source, edge.target):
            if rid not in registry:
                raise UnknownResource(rid, referenced_by=str(edge))

    for edge in declared_edges(registry) + explicit:
        graph.add_edge(edge)
        if edge.kind == EdgeKind.NOTIFY and notify_implies_order:
            graph.add_edge(Edge(edge.source, edge.target, EdgeKind.ORDER))

    graph.check_acyclic()
    logger.debug(
        "Grafo construido: %d recursos, %d aristas order, %d aristas notify",
        len(graph), len(graph.edges(EdgeKind.ORDER)), len(graph.edges(EdgeKind.NOTIFY)),
    )
    return graph
