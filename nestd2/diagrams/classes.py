"""D2 rendering for global and per-module class diagrams."""

from __future__ import annotations

import re
from typing import List, Optional

from .graph import ClassGraph, ClassGroup, ClassNode
from ..models import ClassDiagramOptions, ClassKind

_INDENT = "  "
_INJECTABLE_FILL = "#e3f2fd"
_OPTIONAL_EDGE_STYLE = " {style.stroke-dash: 3}"

_KIND_STROKES = {
    ClassKind.CONTROLLER: "#1565c0",
    ClassKind.SERVICE: "#2e7d32",
    ClassKind.GUARD: "#c62828",
    ClassKind.INTERCEPTOR: "#6a1b9a",
    ClassKind.PIPE: "#ef6c00",
    ClassKind.FILTER: "#ad1457",
    ClassKind.MIDDLEWARE: "#00838f",
    ClassKind.OTHER: "#616161",
}

_VISIBILITY_PREFIX = {"public": "+", "private": "-", "protected": "#"}

_PLAIN_KEY = re.compile(r"^[A-Za-z_$][\w$]*\??$")
# D2 reads these as arrays, maps, block strings or comments unless quoted
_UNSAFE_VALUE = re.compile(r"(?<!\\)[\[\]{}|;#]")


class ClassDiagramRenderer:
    """Serializes a class graph into D2 ``shape: class`` nodes grouped by module."""

    def __init__(self, options: Optional[ClassDiagramOptions] = None) -> None:
        self.options = options or ClassDiagramOptions()

    def render(self, graph: ClassGraph) -> str:
        title = f"{graph.focus} Class Diagram" if graph.focus else "NestJS Class Diagram"
        lines: List[str] = [f"# {title}", "", "direction: down", ""]
        lines.extend(self._style_classes())
        lines.append("")

        for group in graph.groups:
            lines.extend(self._group_block(group))
            lines.append("")

        for node in graph.loose:
            lines.extend(self._class_block(node, depth=0))
            lines.append("")

        for edge in graph.edges:
            style = _OPTIONAL_EDGE_STYLE if edge.optional else ""
            lines.append(f"{edge.source} -> {edge.target}: {edge.label}{style}")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _style_classes() -> List[str]:
        lines = [
            "classes: {",
            "  module: {",
            '    style.fill: "#f5f5f5"',
            '    style.stroke: "#9e9e9e"',
            "    style.border-radius: 8",
            "  }",
            "  satellite: {",
            '    style.fill: "#fafafa"',
            '    style.stroke: "#bdbdbd"',
            "    style.stroke-dash: 3",
            "  }",
        ]
        for kind, stroke in _KIND_STROKES.items():
            lines.extend([f"  {kind.value}: {{", f'    style.stroke: "{stroke}"', "  }"])
        lines.append("}")
        return lines

    def _group_block(self, group: ClassGroup) -> List[str]:
        style = "module" if group.focal else "satellite"
        lines = [f"{group.identifier}: {group.module} {{", f"{_INDENT}class: [{style}]"]
        for node in group.nodes:
            lines.append("")
            lines.extend(self._class_block(node, depth=1))
        lines.append("}")
        return lines

    def _class_block(self, node: ClassNode, depth: int) -> List[str]:
        info = node.info
        pad = _INDENT * depth
        inner = pad + _INDENT

        lines = [
            f"{pad}{node.identifier}: {info.name} {{",
            f"{inner}shape: class",
            f"{inner}class: [{info.kind.value}]",
        ]
        if info.is_injectable:
            lines.append(f'{inner}style.fill: "{_INJECTABLE_FILL}"')

        if info.dependencies:
            lines.append(f"{inner}# Dependencies")
            for dep in info.dependencies:
                optional = "?" if dep.is_optional else ""
                token = f" (@Inject('{dep.token}'))" if dep.token else ""
                lines.append(f"{inner}{_key(dep.name + optional)}: {_value(dep.type + token)}")

        if self.options.include_attributes and info.properties:
            lines.append(f"{inner}# Attributes")
            for prop in info.properties:
                readonly = "readonly " if prop.is_readonly else ""
                key = f"{_prefix(prop.visibility)}{readonly}{prop.name}"
                lines.append(f"{inner}{_quote(key)}: {_value(prop.type or 'any')}")

        if self.options.include_methods and info.methods:
            lines.append(f"{inner}# Methods")
            for method in info.methods:
                signature = f"{_prefix(method.visibility)}{method.name}({', '.join(method.parameters)})"
                lines.append(f"{inner}{_quote(signature)}: {_value(method.return_type)}")

        lines.append(f"{pad}}}")
        return lines


def _prefix(visibility: str) -> str:
    return _VISIBILITY_PREFIX.get(visibility, "+")


def _quote(text: str) -> str:
    escaped = text.replace('"', '\\"')
    return f'"{escaped}"'


def _key(text: str) -> str:
    return text if _PLAIN_KEY.match(text) else _quote(text)


def _value(text: str) -> str:
    return _quote(text) if _UNSAFE_VALUE.search(text) else text


__all__ = ["ClassDiagramRenderer"]
