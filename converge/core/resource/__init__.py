"""
Resource: modelo de recursos, esquemas por tipo y registro de declaraciones.
"""

from converge.core.resource.models import Edge, EdgeKind, Resource, ResourceId
from converge.core.resource.registry import ResourceRegistry
from converge.core.resource.types import SCHEMAS, ResourceSchema

__all__ = [
    "Edge",
    "EdgeKind",
    "Resource",
    "ResourceId",
    "ResourceRegistry",
    "ResourceSchema",
    "SCHEMAS",
]
