"""Analyzer that extracts classes, their injected dependencies and members."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set, Tuple

import tree_sitter

from .naming import escape_brackets, is_primitive_or_builtin, normalize_type_name
from .tree_sitter import (
    TypeScriptAnalyzer,
    annotation_type_text,
    class_decorators,
    decorator_arguments,
    decorator_name,
    find_decorator,
    iter_class_declarations,
    node_text,
    unwrap_forward_ref,
)
from ..logging import get_logger
from ..models import (
    ClassInfo,
    ClassKind,
    DependencyInfo,
    MethodInfo,
    PropertyInfo,
    ProjectManifest,
)

logger = get_logger("analyzers.classes")

_PROMISE = re.compile(r"^Promise\s*<(.+)>$", re.DOTALL)
_PARAMETER_TYPES = {"required_parameter", "optional_parameter"}
_ACCESSOR_TOKENS = {"get", "set"}

# Checked in order against implemented interface names of @Injectable classes.
_IMPLEMENTS_KINDS: Tuple[Tuple[str, ClassKind], ...] = (
    ("Guard", ClassKind.GUARD),
    ("Interceptor", ClassKind.INTERCEPTOR),
    ("PipeTransform", ClassKind.PIPE),
    ("ExceptionFilter", ClassKind.FILTER),
)
_EXTENDS_KINDS: Tuple[Tuple[str, ClassKind], ...] = (
    ("Guard", ClassKind.GUARD),
    ("Interceptor", ClassKind.INTERCEPTOR),
)


class ClassAnalyzer(TypeScriptAnalyzer[ClassInfo]):
    """Reads every named class in the non-module source files."""

    def supports(self, manifest: ProjectManifest) -> bool:
        return bool(manifest.source_files)

    def analyze(self, manifest: ProjectManifest) -> List[ClassInfo]:
        classes: List[ClassInfo] = []
        for rel_path in manifest.source_files:
            parsed = self._parse_file(manifest.root, rel_path)
            if parsed is None:
                continue
            tree, source_bytes = parsed
            found = extract_classes(tree.root_node, source_bytes, rel_path)
            if found:
                logger.debug("Found %d classes in %s", len(found), rel_path)
            classes.extend(found)
        return classes


def extract_classes(root: tree_sitter.Node, source_bytes: bytes, file_path: str) -> List[ClassInfo]:
    classes: List[ClassInfo] = []
    for class_node in iter_class_declarations(root):
        info = extract_class(class_node, source_bytes, file_path)
        if info is not None:
            classes.append(info)
    return classes


def extract_class(
    class_node: tree_sitter.Node, source_bytes: bytes, file_path: str
) -> Optional[ClassInfo]:
    """Build a ClassInfo for one class declaration; unnamed classes yield None."""
    name_node = class_node.child_by_field_name("name")
    if name_node is None:
        return None
    name = node_text(name_node, source_bytes)

    decorators = {decorator_name(node, source_bytes) for node in class_decorators(class_node)}
    implements, extends = _heritage_names(class_node, source_bytes)

    body = class_node.child_by_field_name("body")
    members = body.named_children if body is not None else []

    return ClassInfo(
        name=name,
        file_path=file_path,
        dependencies=_extract_dependencies(members, source_bytes),
        properties=_extract_properties(members, source_bytes),
        methods=_extract_methods(members, source_bytes),
        is_injectable="Injectable" in decorators,
        kind=classify_class(decorators, implements, extends),
    )


def classify_class(
    decorators: Set[str], implements: Iterable[str], extends: Iterable[str]
) -> ClassKind:
    """Derive the architectural role of a class from its decorators and heritage."""
    implements = list(implements)
    if "Controller" in decorators:
        return ClassKind.CONTROLLER
    if "Catch" in decorators:
        return ClassKind.FILTER
    if "Injectable" in decorators:
        for implemented in implements:
            for marker, kind in _IMPLEMENTS_KINDS:
                if marker in implemented:
                    return kind
        for base in extends:
            for marker, kind in _EXTENDS_KINDS:
                if marker in base:
                    return kind
        return ClassKind.SERVICE
    if any("NestMiddleware" in implemented for implemented in implements):
        return ClassKind.MIDDLEWARE
    return ClassKind.OTHER


def _heritage_names(class_node: tree_sitter.Node, source_bytes: bytes) -> Tuple[List[str], List[str]]:
    implements: List[str] = []
    extends: List[str] = []
    for child in class_node.named_children:
        if child.type != "class_heritage":
            continue
        for clause in child.named_children:
            if clause.type == "extends_clause":
                extends.extend(
                    node_text(node, source_bytes)
                    for node in clause.named_children
                    if node.type != "type_arguments"
                )
            elif clause.type == "implements_clause":
                implements.extend(node_text(node, source_bytes) for node in clause.named_children)
    return implements, extends


def _find_constructor(
    members: List[tree_sitter.Node], source_bytes: bytes
) -> Optional[tree_sitter.Node]:
    for member in members:
        if member.type != "method_definition":
            continue
        name = member.child_by_field_name("name")
        if name is not None and node_text(name, source_bytes) == "constructor":
            return member
    return None


def _parameters(method: tree_sitter.Node) -> List[tree_sitter.Node]:
    params = method.child_by_field_name("parameters")
    if params is None:
        return []
    return [child for child in params.named_children if child.type in _PARAMETER_TYPES]


def _extract_dependencies(members: List[tree_sitter.Node], source_bytes: bytes) -> List[DependencyInfo]:
    constructor = _find_constructor(members, source_bytes)
    if constructor is None:
        return []

    dependencies: List[DependencyInfo] = []
    for param in _parameters(constructor):
        pattern = param.child_by_field_name("pattern")
        if pattern is None:
            continue

        type_text = annotation_type_text(param.child_by_field_name("type"), source_bytes)
        if type_text is None:
            type_text = _inferred_type(param.child_by_field_name("value"), source_bytes)
        type_name = normalize_type_name(type_text)
        if not type_name or is_primitive_or_builtin(type_name):
            continue

        decorators = [child for child in param.children if child.type == "decorator"]
        token = None
        inject = find_decorator(decorators, "Inject", source_bytes)
        if inject is not None:
            arguments = decorator_arguments(inject)
            if arguments:
                token = unwrap_forward_ref(arguments[0], source_bytes) or _strip_quotes(
                    node_text(arguments[0], source_bytes)
                )

        is_optional = (
            param.type == "optional_parameter"
            or find_decorator(decorators, "Optional", source_bytes) is not None
        )

        dependencies.append(
            DependencyInfo(
                name=node_text(pattern, source_bytes),
                type=type_name,
                is_optional=is_optional,
                token=token or None,
            )
        )
    return dependencies


def _extract_properties(members: List[tree_sitter.Node], source_bytes: bytes) -> List[PropertyInfo]:
    properties: List[PropertyInfo] = []
    for member in members:
        if member.type != "public_field_definition":
            continue
        name = member.child_by_field_name("name")
        if name is None:
            continue
        type_text = annotation_type_text(member.child_by_field_name("type"), source_bytes)
        if type_text is None:
            type_text = _inferred_type(member.child_by_field_name("value"), source_bytes)
        properties.append(
            PropertyInfo(
                name=node_text(name, source_bytes),
                type=normalize_type_name(type_text),
                visibility=_visibility(member, source_bytes),
                is_readonly=any(child.type == "readonly" for child in member.children),
            )
        )
    return properties


def _extract_methods(members: List[tree_sitter.Node], source_bytes: bytes) -> List[MethodInfo]:
    methods: List[MethodInfo] = []
    for member in members:
        if member.type != "method_definition":
            continue
        if any(child.type in _ACCESSOR_TOKENS for child in member.children):
            continue
        name_node = member.child_by_field_name("name")
        if name_node is None:
            continue
        name = node_text(name_node, source_bytes)
        if name == "constructor":
            continue

        # Only the written annotation is used; inferred return types get too verbose.
        return_type = _return_type(member.child_by_field_name("return_type"), source_bytes)

        parameters: List[str] = []
        for param in _parameters(member):
            pattern = param.child_by_field_name("pattern")
            if pattern is None:
                continue
            param_type = annotation_type_text(param.child_by_field_name("type"), source_bytes) or "any"
            parameters.append(
                f"{_collapse(node_text(pattern, source_bytes))}: {escape_brackets(_collapse(param_type))}"
            )

        methods.append(
            MethodInfo(
                name=name,
                return_type=escape_brackets(return_type),
                visibility=_visibility(member, source_bytes),
                parameters=parameters,
            )
        )
    return methods


def _return_type(annotation: Optional[tree_sitter.Node], source_bytes: bytes) -> str:
    if annotation is None or annotation.type != "type_annotation":
        return "any"
    text = annotation_type_text(annotation, source_bytes)
    if not text:
        return "any"
    text = _collapse(text)
    match = _PROMISE.match(text)
    if match:
        text = match.group(1).strip()
    return text


def _inferred_type(value: Optional[tree_sitter.Node], source_bytes: bytes) -> str:
    if value is None:
        return "any"
    if value.type in {"string", "template_string"}:
        return "string"
    if value.type == "number":
        return "number"
    if value.type in {"true", "false"}:
        return "boolean"
    if value.type == "array":
        return "any[]"
    if value.type == "new_expression":
        constructor = value.child_by_field_name("constructor")
        if constructor is not None:
            return node_text(constructor, source_bytes)
    return "any"


def _visibility(member: tree_sitter.Node, source_bytes: bytes) -> str:
    for child in member.children:
        if child.type == "accessibility_modifier":
            return node_text(child, source_bytes).strip()
    name = member.child_by_field_name("name")
    if name is not None and name.type == "private_property_identifier":
        return "private"
    return "public"


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _strip_quotes(text: str) -> str:
    return text.strip().strip("'\"`")


__all__ = ["ClassAnalyzer", "classify_class", "extract_class", "extract_classes"]
