"""Metadata collection for component diagrams.

The pipeline asks a :class:`MetadataProvider` for everything a human would
otherwise type in: the system container title, per-module technology and
description, and which class members to draw. Questions are asked one at a
time, in module declaration order.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Mapping, Optional, Protocol, TextIO

from rich.console import Console
from rich.prompt import Confirm, Prompt

from .logging import get_logger
from .models import ClassDiagramOptions, ModuleInfo, ModuleMetadata

logger = get_logger("interactive")

FALLBACK_TECHNOLOGY = "NestJS"


class MetadataProvider(Protocol):
    """Source of the answers used to enrich the generated diagrams."""

    def container_title(self) -> str:
        ...

    def wants_metadata(self) -> bool:
        ...

    def default_technology(self) -> str:
        ...

    def module_metadata(self, module: ModuleInfo, defaults: ModuleMetadata) -> ModuleMetadata:
        ...

    def class_diagram_options(self) -> ClassDiagramOptions:
        ...


class StaticMetadataProvider:
    """Answers taken from configuration; never blocks on input."""

    def __init__(
        self,
        *,
        container: Optional[str] = None,
        default_technology: Optional[str] = None,
        modules: Optional[Mapping[str, ModuleMetadata]] = None,
        options: Optional[ClassDiagramOptions] = None,
        enrich: Optional[bool] = None,
    ) -> None:
        self._container = container or ""
        self._default_technology = default_technology or ""
        self._modules: Dict[str, ModuleMetadata] = dict(modules or {})
        self._options = options or ClassDiagramOptions()
        self._enrich = enrich

    def container_title(self) -> str:
        return self._container

    def wants_metadata(self) -> bool:
        if self._enrich is not None:
            return self._enrich
        return bool(self._default_technology or self._modules)

    def default_technology(self) -> str:
        return self._default_technology

    def module_metadata(self, module: ModuleInfo, defaults: ModuleMetadata) -> ModuleMetadata:
        configured = self._modules.get(module.name)
        if configured is None:
            return ModuleMetadata()
        return dataclasses.replace(configured)

    def class_diagram_options(self) -> ClassDiagramOptions:
        return self._options


class PromptMetadataProvider:
    """Asks for metadata on the console with rich prompts."""

    def __init__(
        self,
        console: Optional[Console] = None,
        stream: Optional[TextIO] = None,
        *,
        container: Optional[str] = None,
        initial_technology: str = FALLBACK_TECHNOLOGY,
    ) -> None:
        self.console = console or Console()
        self._stream = stream
        self._container = container
        self._initial_technology = initial_technology

    def container_title(self) -> str:
        if self._container is not None:
            return self._container
        return self._ask("Please name the container that represents this project", "")

    def wants_metadata(self) -> bool:
        return self._confirm(
            "Do you want to add metadata (technology, descriptions) to components?", False
        )

    def default_technology(self) -> str:
        return self._ask(
            "Enter default technology for all components (leave empty to prompt for each)",
            self._initial_technology,
        )

    def module_metadata(self, module: ModuleInfo, defaults: ModuleMetadata) -> ModuleMetadata:
        self.console.print(f"\n[bold]--- {module.name} ---[/bold]")
        technology = self._ask("Technology", defaults.technology)
        prompt = "Description" if defaults.description else "Description (what does this module do?)"
        description = self._ask(prompt, defaults.description)
        return ModuleMetadata(technology=technology.strip(), description=description.strip())

    def class_diagram_options(self) -> ClassDiagramOptions:
        include_attributes = self._confirm("Include class attributes/properties in diagrams?", True)
        include_methods = self._confirm("Include class methods in diagrams?", True)
        return ClassDiagramOptions(
            include_attributes=include_attributes,
            include_methods=include_methods,
        )

    def _ask(self, prompt: str, default: str) -> str:
        try:
            answer = Prompt.ask(prompt, default=default, console=self.console, stream=self._stream)
        except EOFError:
            logger.debug("Input closed; using %r for %r", default, prompt)
            return default
        return answer or ""

    def _confirm(self, prompt: str, default: bool) -> bool:
        try:
            return Confirm.ask(prompt, default=default, console=self.console, stream=self._stream)
        except EOFError:
            logger.debug("Input closed; using %r for %r", default, prompt)
            return default


def enrich_modules(
    modules: List[ModuleInfo],
    provider: MetadataProvider,
    default_technology: str,
    existing: Optional[Mapping[str, ModuleMetadata]] = None,
) -> List[ModuleInfo]:
    """Attach technology and description to every module, in declaration order.

    A fresh answer always wins. Values recovered from a previous diagram only
    fill in what the answer leaves empty, followed by the default technology.
    """
    existing = existing or {}
    enriched: List[ModuleInfo] = []
    for module in modules:
        previous = existing.get(module.name, ModuleMetadata())
        technology = previous.technology or default_technology or FALLBACK_TECHNOLOGY
        description = previous.description
        defaults = ModuleMetadata(technology=technology, description=description)

        answer = provider.module_metadata(module, defaults)
        enriched.append(
            dataclasses.replace(
                module,
                technology=answer.technology or technology,
                description=answer.description or description or "",
            )
        )
        logger.debug("Enriched %s with technology %s", module.name, enriched[-1].technology)
    return enriched


__all__ = [
    "FALLBACK_TECHNOLOGY",
    "MetadataProvider",
    "PromptMetadataProvider",
    "StaticMetadataProvider",
    "enrich_modules",
]
