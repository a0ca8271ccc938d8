"""Assembly of module and class graphs prior to D2 rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..analyzers.naming import sanitize_identifier
from ..models import ClassInfo, DependencyInfo, ModuleInfo

IMPORTS_LABEL = "imports"
DEPENDS_ON_LABEL = "depends on"


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    label: str
    optional: bool = False


@dataclass
class ModuleNode:
    module: ModuleInfo
    identifier: str
    path: str


@dataclass
class ComponentGraph:
    """Modules and their import edges, optionally nested in a system container."""

    nodes: List[ModuleNode]
    edges: List[Edge]
    container: Optional[str] = None
    title: Optional[str] = None


@dataclass
class ClassNode:
    info: ClassInfo
    identifier: str
    path: str


@dataclass
class ClassGroup:
    """Classes that belong to one module, rendered as a container."""

    module: str
    identifier: str
    nodes: List[ClassNode] = field(default_factory=list)
    focal: bool = True


@dataclass
class ClassGraph:
    groups: List[ClassGroup]
    loose: List[ClassNode]
    edges: List[Edge]
    focus: Optional[str] = None

    def iter_nodes(self) -> Iterable[ClassNode]:
        for group in self.groups:
            yield from group.nodes
        yield from self.loose


class IdentifierScope:
    """Hands out sanitized identifiers that are unique within one D2 scope."""

    def __init__(self) -> None:
        self._used: Set[str] = set()

    def allocate(self, name: str) -> str:
        base = sanitize_identifier(name)
        candidate = base
        suffix = 2
        while candidate in self._used:
            candidate = f"{base}_{suffix}"
            suffix += 1
        self._used.add(candidate)
        return candidate


def build_component_graph(
    modules: Iterable[ModuleInfo], container_title: Optional[str] = None
) -> ComponentGraph:
    """Create module nodes and ``imports`` edges between known modules.

    Imports naming a module outside the analyzed set are dropped.
    """
    title = container_title.strip() if container_title else ""
    container = sanitize_identifier(title) if title else None

    scope = IdentifierScope()
    nodes: List[ModuleNode] = []
    by_sanitized: Dict[str, ModuleNode] = {}
    for module in modules:
        identifier = scope.allocate(module.name)
        path = f"{container}.{identifier}" if container else identifier
        node = ModuleNode(module=module, identifier=identifier, path=path)
        nodes.append(node)
        by_sanitized.setdefault(sanitize_identifier(module.name), node)

    edges: List[Edge] = []
    for node in nodes:
        for imported in node.module.imports:
            target = by_sanitized.get(sanitize_identifier(imported))
            if target is None:
                continue
            edges.append(Edge(source=node.path, target=target.path, label=IMPORTS_LABEL))

    return ComponentGraph(nodes=nodes, edges=edges, container=container, title=title or None)


def build_class_graph(classes: List[ClassInfo]) -> ClassGraph:
    """Group every class under its module and connect resolved dependencies."""
    by_name = _index_by_name(classes)
    groups, loose, node_for = _layout(classes, focus=None)
    edges = _dependency_edges(classes, by_name, node_for)
    return ClassGraph(groups=groups, loose=loose, edges=edges)


def build_module_class_graph(classes: List[ClassInfo], module_name: str) -> ClassGraph:
    """Localized view: one module's classes plus the classes they depend on."""
    by_name = _index_by_name(classes)
    focal = [info for info in classes if info.module_context == module_name]

    view: List[ClassInfo] = list(focal)
    included = {id(info) for info in view}
    for info in focal:
        for dep in info.dependencies:
            target = resolve_dependency(dep, by_name)
            if target is not None and id(target) not in included:
                included.add(id(target))
                view.append(target)

    groups, loose, node_for = _layout(view, focus=module_name)
    edges = _dependency_edges(focal, by_name, node_for)
    return ClassGraph(groups=groups, loose=loose, edges=edges, focus=module_name)


def resolve_dependency(dep: DependencyInfo, by_name: Dict[str, ClassInfo]) -> Optional[ClassInfo]:
    """Find the class a dependency points at; an injection token naming a class wins."""
    if dep.token and dep.token in by_name:
        return by_name[dep.token]
    return by_name.get(dep.type)


def _index_by_name(classes: Iterable[ClassInfo]) -> Dict[str, ClassInfo]:
    index: Dict[str, ClassInfo] = {}
    for info in classes:
        index.setdefault(info.name, info)
    return index


def _layout(
    classes: Iterable[ClassInfo], focus: Optional[str]
) -> Tuple[List[ClassGroup], List[ClassNode], Dict[int, ClassNode]]:
    top_scope = IdentifierScope()
    group_scopes: Dict[str, IdentifierScope] = {}
    groups: Dict[str, ClassGroup] = {}
    loose: List[ClassNode] = []
    node_for: Dict[int, ClassNode] = {}

    for info in classes:
        module = info.module_context
        if module:
            group = groups.get(module)
            if group is None:
                group = ClassGroup(
                    module=module,
                    identifier=top_scope.allocate(module),
                    focal=focus is None or module == focus,
                )
                groups[module] = group
                group_scopes[module] = IdentifierScope()
            identifier = group_scopes[module].allocate(info.name)
            node = ClassNode(info=info, identifier=identifier, path=f"{group.identifier}.{identifier}")
            group.nodes.append(node)
        else:
            identifier = top_scope.allocate(info.name)
            node = ClassNode(info=info, identifier=identifier, path=identifier)
            loose.append(node)
        node_for[id(info)] = node

    return list(groups.values()), loose, node_for


def _dependency_edges(
    sources: Iterable[ClassInfo],
    by_name: Dict[str, ClassInfo],
    node_for: Dict[int, ClassNode],
) -> List[Edge]:
    edges: List[Edge] = []
    for info in sources:
        source = node_for.get(id(info))
        if source is None:
            continue
        for dep in info.dependencies:
            target_info = resolve_dependency(dep, by_name)
            target = node_for.get(id(target_info)) if target_info is not None else None
            if target is None:
                continue
            edges.append(
                Edge(
                    source=source.path,
                    target=target.path,
                    label=DEPENDS_ON_LABEL,
                    optional=dep.is_optional,
                )
            )
    return edges


__all__ = [
    "ClassGraph",
    "ClassGroup",
    "ClassNode",
    "ComponentGraph",
    "Edge",
    "IdentifierScope",
    "ModuleNode",
    "build_class_graph",
    "build_component_graph",
    "build_module_class_graph",
    "resolve_dependency",
]
