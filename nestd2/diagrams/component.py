"""D2 rendering for the module component diagram."""

from __future__ import annotations

import json
import re
from typing import Dict, List

from .graph import ComponentGraph, ModuleNode
from ..analyzers.naming import sanitize_identifier

METADATA_MARKER = "# nestd2:metadata "

_INDENT = "  "
_PIPE_RUN = re.compile(r"\|+")


class ComponentDiagramRenderer:
    """Serializes a component graph into D2 text.

    Without a container title modules are top-level nodes. With one, every
    module is nested inside a single system container and edges use the
    qualified ``Container.Module`` paths.
    """

    def render(self, graph: ComponentGraph, *, show_nesting: bool = False) -> str:
        lines: List[str] = [
            "# NestJS Component Diagram",
            "",
            "direction: right",
            "",
        ]
        lines.extend(self._style_classes(system=graph.container is not None))
        lines.append("")

        if graph.container is not None:
            fence = _fence(graph.title or "")
            lines.append(f"{graph.container}: {fence}md")
            lines.append(f"{_INDENT}## {graph.title}")
            lines.append(f"{fence} {{")
            lines.append(f"{_INDENT}class: [container]")
            for node in graph.nodes:
                lines.append("")
                lines.extend(self._module_block(node, show_nesting, depth=1))
            lines.append("}")
            lines.append("")
        else:
            for node in graph.nodes:
                lines.extend(self._module_block(node, show_nesting, depth=0))
                lines.append("")

        for edge in graph.edges:
            lines.append(f"{edge.source} -> {edge.target}: {edge.label}")

        metadata = _metadata_payload(graph.nodes)
        if metadata:
            lines.append("")
            lines.append(METADATA_MARKER + json.dumps(metadata, sort_keys=True, ensure_ascii=False))

        return "\n".join(lines) + "\n"

    @staticmethod
    def _style_classes(*, system: bool) -> List[str]:
        lines = [
            "classes: {",
            "  component: {",
            "    shape: rectangle",
            '    style.fill: "#87CEEB"',
            "    style.border-radius: 32",
            "  }",
        ]
        if system:
            lines.extend(
                [
                    "  container: {",
                    '    style.fill: "#ffffff"',
                    '    style.stroke: "#444444"',
                    "    style.stroke-dash: 3",
                    "  }",
                ]
            )
        lines.append("}")
        return lines

    def _module_block(self, node: ModuleNode, show_nesting: bool, depth: int) -> List[str]:
        module = node.module
        pad = _INDENT * depth
        inner = pad + _INDENT

        label = [f"{inner}### {module.name}", f"{inner}---"]
        if module.technology:
            label.append(f"{inner}**[Component: {module.technology}]**")
        if module.description:
            label.append("")
            label.extend(f"{inner}{text}" if text.strip() else "" for text in module.description.splitlines())
        fence = _fence("\n".join(label))
        lines = [f"{pad}{node.identifier}: {fence}md", *label, f"{pad}{fence} {{"]
        lines.append(f"{inner}class: [component]")

        if show_nesting:
            lines.extend(_nested_names(inner, "providers", "Providers", module.providers))
            lines.extend(_nested_names(inner, "controllers", "Controllers", module.controllers))

        lines.append(f"{pad}}}")
        return lines


def _fence(text: str) -> str:
    """Return a block-string delimiter longer than any run of pipes in ``text``."""
    longest = max((len(run) for run in _PIPE_RUN.findall(text)), default=0)
    return "|" * (longest + 1)


def _nested_names(pad: str, key: str, label: str, names: List[str]) -> List[str]:
    if not names:
        return []
    lines = ["", f"{pad}{key}: {label} {{", f"{pad}{_INDENT}shape: rectangle"]
    for name in names:
        lines.append(f"{pad}{_INDENT}{sanitize_identifier(name)}: {json.dumps(name)}")
    lines.append(f"{pad}}}")
    return lines


def _metadata_payload(nodes: List[ModuleNode]) -> Dict[str, Dict[str, str]]:
    payload: Dict[str, Dict[str, str]] = {}
    for node in nodes:
        module = node.module
        if module.technology or module.description:
            payload[module.name] = {
                "technology": module.technology,
                "description": module.description,
            }
    return payload


__all__ = ["ComponentDiagramRenderer", "METADATA_MARKER"]
