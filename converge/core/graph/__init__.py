"""
Graph: construcción del grafo de dependencias, detección de ciclos y orden total.
"""

from converge.core.graph.builder import build_graph, declared_edges
from converge.core.graph.graph import DependencyGraph

__all__ = ["DependencyGraph", "build_graph", "declared_edges"]
