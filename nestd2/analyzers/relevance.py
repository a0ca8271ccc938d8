"""Module ownership and relevance filtering for extracted classes."""

from __future__ import annotations

import dataclasses
import re
from typing import Dict, Iterable, List, Mapping, Set

from .naming import normalize_type_name, unescape_brackets
from ..logging import get_logger
from ..models import ClassInfo, ModuleInfo

logger = get_logger("analyzers.relevance")

_SIGNATURE_TYPE = re.compile(r":\s*(.+)$")


def build_module_index(modules: Iterable[ModuleInfo]) -> Dict[str, str]:
    """Map each controller/provider/guard/interceptor/pipe/filter name to its module.

    A class registered by several modules stays with the first one.
    """
    index: Dict[str, str] = {}
    for module in modules:
        for class_name in module.owned_names():
            owner = index.get(class_name)
            if owner is None:
                index[class_name] = module.name
            elif owner != module.name:
                logger.warning(
                    "%s is registered by both %s and %s; grouping it under %s",
                    class_name,
                    owner,
                    module.name,
                    owner,
                )
    return index


def collect_referenced_names(classes: Iterable[ClassInfo]) -> Set[str]:
    """Return every type name referenced by dependencies, properties or method signatures."""
    referenced: Set[str] = set()
    for info in classes:
        for dep in info.dependencies:
            referenced.add(dep.type)
            if dep.token:
                referenced.add(dep.token)
        for prop in info.properties:
            referenced.add(prop.type)
        for method in info.methods:
            referenced.add(_normalized(method.return_type))
            for signature in method.parameters:
                match = _SIGNATURE_TYPE.search(signature)
                if match:
                    referenced.add(_normalized(match.group(1)))
    referenced.discard("")
    return referenced


def filter_relevant_classes(
    classes: Iterable[ClassInfo],
    module_index: Mapping[str, str],
    referenced: Set[str],
) -> List[ClassInfo]:
    """Keep classes owned by a module or referenced by another class.

    Returns copies with ``module_context`` assigned; the inputs are not modified.
    """
    kept: List[ClassInfo] = []
    for info in classes:
        context = module_index.get(info.name)
        if context is None and info.name not in referenced:
            continue
        kept.append(dataclasses.replace(info, module_context=context))
    return kept


def select_relevant_classes(classes: List[ClassInfo], modules: List[ModuleInfo]) -> List[ClassInfo]:
    index = build_module_index(modules)
    referenced = collect_referenced_names(classes)
    kept = filter_relevant_classes(classes, index, referenced)
    logger.debug("Kept %d of %d classes", len(kept), len(classes))
    return kept


def _normalized(type_text: str) -> str:
    return normalize_type_name(unescape_brackets(type_text.strip()))


__all__ = [
    "build_module_index",
    "collect_referenced_names",
    "filter_relevant_classes",
    "select_relevant_classes",
]
