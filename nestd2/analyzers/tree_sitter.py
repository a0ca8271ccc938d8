"""Tree-sitter helpers for reading TypeScript declarations."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import tree_sitter
import tree_sitter_typescript

from .base import Analyzer, T
from ..logging import get_logger

logger = get_logger("analyzers.tree_sitter")

_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())

_CLASS_NODE_TYPES = {"class_declaration", "abstract_class_declaration", "class"}


class TypeScriptAnalyzer(Analyzer[T]):
    """Shared parsing support for analyzers that walk TypeScript files."""

    def __init__(self) -> None:
        self._parser: Optional[tree_sitter.Parser] = None

    def _get_parser(self) -> tree_sitter.Parser:
        if self._parser is None:
            self._parser = tree_sitter.Parser(_TS_LANGUAGE)
        return self._parser

    def _parse_file(self, root: str, rel_path: str) -> Optional[Tuple[tree_sitter.Tree, bytes]]:
        path = Path(root) / rel_path
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable source %s: %s", rel_path, exc)
            return None
        source_bytes = source.encode("utf-8")
        return self._get_parser().parse(source_bytes), source_bytes


def node_text(node: tree_sitter.Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def iter_class_declarations(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Yield top-level class declarations, including exported ones, in source order."""
    for child in root.children:
        if child.type in _CLASS_NODE_TYPES:
            yield child
        elif child.type == "export_statement":
            declaration = child.child_by_field_name("declaration")
            if declaration is not None and declaration.type in _CLASS_NODE_TYPES:
                yield declaration


def class_decorators(class_node: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Return decorators applied to a class, whether written before or after ``export``."""
    decorators: List[tree_sitter.Node] = []
    parent = class_node.parent
    if parent is not None and parent.type == "export_statement":
        decorators.extend(child for child in parent.children if child.type == "decorator")
    decorators.extend(child for child in class_node.children if child.type == "decorator")
    return decorators


def decorator_name(decorator: tree_sitter.Node, source_bytes: bytes) -> str:
    expression = _decorator_expression(decorator)
    if expression is None:
        return ""
    if expression.type == "call_expression":
        expression = expression.child_by_field_name("function") or expression
    if expression.type == "member_expression":
        prop = expression.child_by_field_name("property")
        if prop is not None:
            return node_text(prop, source_bytes)
    return node_text(expression, source_bytes)


def decorator_arguments(decorator: tree_sitter.Node) -> List[tree_sitter.Node]:
    expression = _decorator_expression(decorator)
    if expression is None or expression.type != "call_expression":
        return []
    arguments = expression.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != "comment"]


def find_decorator(
    decorators: List[tree_sitter.Node], name: str, source_bytes: bytes
) -> Optional[tree_sitter.Node]:
    for decorator in decorators:
        if decorator_name(decorator, source_bytes) == name:
            return decorator
    return None


def unwrap_forward_ref(node: tree_sitter.Node, source_bytes: bytes) -> Optional[str]:
    """Return ``X`` for ``forwardRef(() => X)``, otherwise None."""
    if node.type != "call_expression":
        return None
    function = node.child_by_field_name("function")
    if function is None or node_text(function, source_bytes) != "forwardRef":
        return None
    arguments = node.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    callback = arguments.named_children[0]
    if callback.type != "arrow_function":
        return None
    body = callback.child_by_field_name("body")
    if body is None or body.type != "identifier":
        return None
    return node_text(body, source_bytes)


def annotation_type_text(annotation: Optional[tree_sitter.Node], source_bytes: bytes) -> Optional[str]:
    """Return the type written after ``:`` in a type annotation node."""
    if annotation is None:
        return None
    named = [child for child in annotation.named_children if child.type != "comment"]
    if named:
        return node_text(named[0], source_bytes).strip()
    return node_text(annotation, source_bytes).lstrip(":").strip() or None


def _decorator_expression(decorator: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    for child in decorator.named_children:
        if child.type != "comment":
            return child
    return None


__all__ = [
    "TypeScriptAnalyzer",
    "annotation_type_text",
    "class_decorators",
    "decorator_arguments",
    "decorator_name",
    "find_decorator",
    "iter_class_declarations",
    "node_text",
    "unwrap_forward_ref",
]
