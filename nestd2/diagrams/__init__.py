"""Graph assembly and D2 renderers for component and class diagrams."""

from __future__ import annotations

from .classes import ClassDiagramRenderer
from .component import ComponentDiagramRenderer
from .graph import (
    ClassGraph,
    ComponentGraph,
    Edge,
    build_class_graph,
    build_component_graph,
    build_module_class_graph,
)

__all__ = [
    "ClassDiagramRenderer",
    "ClassGraph",
    "ComponentDiagramRenderer",
    "ComponentGraph",
    "Edge",
    "build_class_graph",
    "build_component_graph",
    "build_module_class_graph",
]
