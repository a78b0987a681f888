"""
Grafo de dependencias: una sola estructura de adyacencia con aristas etiquetadas.

Sobre un nx.MultiDiGraph cuya clave de arista es el EdgeKind. Las aristas ORDER
definen el orden total (y son las únicas que participan en la detección de
ciclos); las NOTIFY solo indican a quién señalizar cuando un recurso cambia.
"""

from typing import Dict, Iterable, List, Optional

import networkx as nx

from converge.core.errors import CyclicDependency, UnknownResource
from converge.core.resource.models import Edge, EdgeKind, Resource, ResourceId


def _dot_id(rid: ResourceId) -> str:
    return str(rid).replace("\\", "\\\\").replace('"', '\\"')


class DependencyGraph:
    """Grafo dirigido sobre recursos con aristas ORDER/NOTIFY."""

    def __init__(self, resources: Iterable[Resource]):
        self.resources: Dict[ResourceId, Resource] = {r.id: r for r in resources}
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self.graph.add_nodes_from(self.resources)
        self._order: Optional[List[ResourceId]] = None

    def add_edge(self, edge: Edge) -> bool:
        """Agrega una arista; devuelve False si ya existía (mismo tipo y extremos)."""
        for rid in (edge.source, edge.target):
            if rid not in self.resources:
                raise UnknownResource(rid)
        if self.graph.has_edge(edge.source, edge.target, key=edge.kind):
            return False
        self.graph.add_edge(edge.source, edge.target, key=edge.kind)
        self._order = None
        return True

    def edges(self, kind: Optional[EdgeKind] = None) -> List[Edge]:
        return [
            Edge(source, target, key)
            for source, target, key in self.graph.edges(keys=True)
            if kind is None or key == kind
        ]

    def successors(self, rid: ResourceId, kind: Optional[EdgeKind] = None) -> List[ResourceId]:
        return [t for _, t, key in self.graph.out_edges(rid, keys=True) if kind is None or key == kind]

    def predecessors(self, rid: ResourceId, kind: Optional[EdgeKind] = None) -> List[ResourceId]:
        return [s for s, _, key in self.graph.in_edges(rid, keys=True) if kind is None or key == kind]

    def order_view(self) -> nx.DiGraph:
        """Subgrafo simple con solo las aristas ORDER (todos los nodos incluidos)."""
        view = nx.DiGraph()
        view.add_nodes_from(self.resources)
        view.add_edges_from((e.source, e.target) for e in self.edges(EdgeKind.ORDER))
        return view

    def find_cycle(self) -> Optional[List[ResourceId]]:
        """
        Busca un ciclo en las aristas ORDER (DFS con pila de recursión de networkx).

        Returns:
            Cadena cerrada [A, B, ..., A] del primer ciclo encontrado, o None
        """
        try:
            cycle = nx.find_cycle(self.order_view())
        except nx.NetworkXNoCycle:
            return None
        return [source for source, _ in cycle] + [cycle[-1][1]]

    def check_acyclic(self) -> None:
        cycle = self.find_cycle()
        if cycle:
            raise CyclicDependency(cycle)

    def order(self) -> List[ResourceId]:
        """
        Orden total consistente con las aristas ORDER.
        Desempate estable por orden de declaración (corridas deterministas).
        """
        if self._order is None:
            self.check_acyclic()
            self._order = list(nx.lexicographical_topological_sort(
                self.order_view(), key=lambda rid: self.resources[rid].index
            ))
        return list(self._order)

    def to_dot(self) -> str:
        """Representación Graphviz (aristas notify punteadas)."""
        lines = ["digraph converge {", "  rankdir=LR;"]
        for rid in self.resources:
            lines.append(f'  "{_dot_id(rid)}";')
        for edge in self.edges():
            style = ' [style=dashed, label="notify"]' if edge.kind == EdgeKind.NOTIFY else ""
            lines.append(f'  "{_dot_id(edge.source)}" -> "{_dot_id(edge.target)}"{style};')
        lines.append("}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.resources)
