"""Analyzers that turn TypeScript sources into module and class entities."""

from __future__ import annotations

from .base import Analyzer
from .classes import ClassAnalyzer
from .modules import ModuleAnalyzer
from .relevance import select_relevant_classes

__all__ = [
    "Analyzer",
    "ClassAnalyzer",
    "ModuleAnalyzer",
    "select_relevant_classes",
]
