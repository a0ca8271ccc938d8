"""Analyzer that extracts ``@Module`` declarations from module files."""

from __future__ import annotations

from typing import Dict, List, Optional

import tree_sitter

from .tree_sitter import (
    TypeScriptAnalyzer,
    class_decorators,
    decorator_arguments,
    find_decorator,
    iter_class_declarations,
    node_text,
    unwrap_forward_ref,
)
from ..logging import get_logger
from ..models import ModuleInfo, ProjectManifest

logger = get_logger("analyzers.modules")

MODULE_LIST_PROPERTIES = (
    "imports",
    "providers",
    "controllers",
    "exports",
    "guards",
    "interceptors",
    "pipes",
    "filters",
)

_PROVIDER_CLASS_KEYS = ("useClass", "useExisting")


class ModuleAnalyzer(TypeScriptAnalyzer[ModuleInfo]):
    """Reads the first ``@Module`` class of every module file."""

    def supports(self, manifest: ProjectManifest) -> bool:
        return bool(manifest.module_files)

    def analyze(self, manifest: ProjectManifest) -> List[ModuleInfo]:
        modules: List[ModuleInfo] = []
        seen: Dict[str, str] = {}
        for rel_path in manifest.module_files:
            parsed = self._parse_file(manifest.root, rel_path)
            if parsed is None:
                continue
            tree, source_bytes = parsed
            module = extract_module(tree.root_node, source_bytes, rel_path)
            if module is None:
                logger.debug("No @Module declaration found in %s", rel_path)
                continue
            if module.name in seen:
                logger.warning(
                    "Module %s declared again in %s; keeping the declaration from %s",
                    module.name,
                    rel_path,
                    seen[module.name],
                )
                continue
            seen[module.name] = rel_path
            modules.append(module)
        return modules


def extract_module(
    root: tree_sitter.Node, source_bytes: bytes, file_path: str
) -> Optional[ModuleInfo]:
    """Return the first module declaration in a parsed file, if any."""
    for class_node in iter_class_declarations(root):
        decorator = find_decorator(class_decorators(class_node), "Module", source_bytes)
        if decorator is None:
            continue
        arguments = decorator_arguments(decorator)
        if not arguments or arguments[0].type != "object":
            continue

        config = arguments[0]
        name_node = class_node.child_by_field_name("name")
        name = node_text(name_node, source_bytes) if name_node is not None else "UnknownModule"
        lists = {
            prop: _array_property_values(config, prop, source_bytes)
            for prop in MODULE_LIST_PROPERTIES
        }
        return ModuleInfo(name=name, file_path=file_path, **lists)
    return None


def _array_property_values(
    config: tree_sitter.Node, property_name: str, source_bytes: bytes
) -> List[str]:
    value = _property_value(config, property_name, source_bytes)
    if value is None or value.type != "array":
        return []
    return [
        _resolve_element(element, source_bytes)
        for element in value.named_children
        if element.type != "comment"
    ]


def _property_value(
    obj: tree_sitter.Node, property_name: str, source_bytes: bytes
) -> Optional[tree_sitter.Node]:
    for child in obj.named_children:
        if child.type != "pair":
            continue
        key = child.child_by_field_name("key")
        if key is None:
            continue
        if _strip_quotes(node_text(key, source_bytes)) == property_name:
            return child.child_by_field_name("value")
    return None


def _resolve_element(element: tree_sitter.Node, source_bytes: bytes) -> str:
    if element.type == "identifier":
        return node_text(element, source_bytes)

    if element.type == "call_expression":
        # ConfigModule.forRoot() is attributed to ConfigModule
        forwarded = unwrap_forward_ref(element, source_bytes)
        if forwarded:
            return forwarded
        function = element.child_by_field_name("function")
        if function is not None and function.type == "member_expression":
            owner = function.child_by_field_name("object")
            if owner is not None:
                return node_text(owner, source_bytes)
        if function is not None:
            return node_text(function, source_bytes)

    if element.type == "member_expression":
        owner = element.child_by_field_name("object")
        if owner is not None:
            return node_text(owner, source_bytes)

    if element.type == "object":
        provider = _resolve_provider_object(element, source_bytes)
        if provider:
            return provider

    return " ".join(node_text(element, source_bytes).split())


def _resolve_provider_object(obj: tree_sitter.Node, source_bytes: bytes) -> Optional[str]:
    for key in _PROVIDER_CLASS_KEYS:
        value = _property_value(obj, key, source_bytes)
        if value is not None and value.type == "identifier":
            return node_text(value, source_bytes)
    provide = _property_value(obj, "provide", source_bytes)
    if provide is not None:
        return _strip_quotes(node_text(provide, source_bytes))
    return None


def _strip_quotes(text: str) -> str:
    return text.strip().strip("'\"`")


__all__ = ["MODULE_LIST_PROPERTIES", "ModuleAnalyzer", "extract_module"]
