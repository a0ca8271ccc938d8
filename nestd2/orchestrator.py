"""Pipeline orchestration for the generate flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .analyzers import ClassAnalyzer, ModuleAnalyzer, select_relevant_classes
from .analyzers.naming import sanitize_identifier
from .config import NestD2Config, load_config
from .diagrams import (
    ClassDiagramRenderer,
    ComponentDiagramRenderer,
    build_class_graph,
    build_component_graph,
    build_module_class_graph,
)
from .interactive import MetadataProvider, StaticMetadataProvider, enrich_modules
from .logging import get_logger
from .models import ClassInfo, ModuleInfo, ProjectManifest
from .reconcile import parse_existing_diagram
from .repo_scanner import RepoScanner

MANIFEST_FILENAME = "tsconfig.json"
COMPONENT_DIAGRAM = "component-diagram.d2"
GLOBAL_CLASS_DIAGRAM = "class-diagram-global.d2"
CLASS_DIAGRAM_DIR = "class-diagrams"


class ManifestNotFoundError(FileNotFoundError):
    """Raised when the project root has no tsconfig.json."""


@dataclass
class GenerateOutcome:
    """Paths written by a generate run."""

    modules: List[ModuleInfo] = field(default_factory=list)
    classes: List[ClassInfo] = field(default_factory=list)
    component_path: Optional[Path] = None
    global_class_path: Optional[Path] = None
    module_class_paths: List[Path] = field(default_factory=list)


class Orchestrator:
    """Coordinates extraction, enrichment and rendering of the diagrams."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        module_analyzer: ModuleAnalyzer | None = None,
        class_analyzer: ClassAnalyzer | None = None,
        component_renderer: ComponentDiagramRenderer | None = None,
    ) -> None:
        self.scanner = scanner
        self.module_analyzer = module_analyzer or ModuleAnalyzer()
        self.class_analyzer = class_analyzer or ClassAnalyzer()
        self.component_renderer = component_renderer or ComponentDiagramRenderer()
        self.logger = get_logger("orchestrator")

    def run_generate(
        self,
        project_path: str,
        output_dir: str | None = None,
        *,
        provider: MetadataProvider | None = None,
        component_only: bool = False,
        class_only: bool = False,
        interactive: bool = False,
        config: NestD2Config | None = None,
    ) -> GenerateOutcome:
        """Analyze the project and write the component and class diagrams."""
        root = Path(project_path).expanduser().resolve()
        if not (root / MANIFEST_FILENAME).exists():
            raise ManifestNotFoundError(f"{MANIFEST_FILENAME} not found in project root: {root}")

        config = config or load_config(root)
        provider = provider or _provider_from_config(config)
        output = Path(output_dir).expanduser().resolve() if output_dir else (config.output or root / "diagrams")
        output.mkdir(parents=True, exist_ok=True)

        self.logger.info("Analyzing NestJS project at: %s", root)
        manifest = self._scan(root, config)

        modules = self.module_analyzer.analyze(manifest) if self.module_analyzer.supports(manifest) else []
        self.logger.info("Found %d modules", len(modules))

        outcome = GenerateOutcome(modules=modules)

        if not class_only:
            modules = self._write_component_diagram(modules, provider, output, interactive, config, outcome)
            outcome.modules = modules

        if not component_only:
            self._write_class_diagrams(manifest, modules, provider, output, outcome)

        return outcome

    def _scan(self, root: Path, config: NestD2Config) -> ProjectManifest:
        scanner = self.scanner or RepoScanner(
            source_dir=config.source_dir,
            module_suffix=config.module_suffix,
            exclude_paths=config.exclude_paths,
        )
        return scanner.scan(str(root))

    def _write_component_diagram(
        self,
        modules: List[ModuleInfo],
        provider: MetadataProvider,
        output: Path,
        interactive: bool,
        config: NestD2Config,
        outcome: GenerateOutcome,
    ) -> List[ModuleInfo]:
        container_title = provider.container_title()
        enrich = interactive or provider.wants_metadata()

        component_path = output / COMPONENT_DIAGRAM
        if enrich:
            default_technology = provider.default_technology()
            existing = parse_existing_diagram(component_path, container_title)
            self.logger.info("Adding metadata to %d modules", len(modules))
            modules = enrich_modules(modules, provider, default_technology, existing)

        show_nesting = config.component.show_nesting
        if show_nesting is None:
            # nested providers/controllers are only drawn when no metadata was collected
            show_nesting = not enrich

        graph = build_component_graph(modules, container_title)
        text = self.component_renderer.render(graph, show_nesting=show_nesting)
        component_path.write_text(text, encoding="utf-8")
        self.logger.info("Component diagram saved to: %s", component_path)
        outcome.component_path = component_path
        return modules

    def _write_class_diagrams(
        self,
        manifest: ProjectManifest,
        modules: List[ModuleInfo],
        provider: MetadataProvider,
        output: Path,
        outcome: GenerateOutcome,
    ) -> None:
        options = provider.class_diagram_options()
        raw_classes = self.class_analyzer.analyze(manifest) if self.class_analyzer.supports(manifest) else []
        classes = select_relevant_classes(raw_classes, modules)
        self.logger.info("Found %d classes", len(classes))
        outcome.classes = classes

        renderer = ClassDiagramRenderer(options)
        global_path = output / GLOBAL_CLASS_DIAGRAM
        global_path.write_text(renderer.render(build_class_graph(classes)), encoding="utf-8")
        self.logger.info("Global class diagram saved to: %s", global_path)
        outcome.global_class_path = global_path

        module_dir = output / CLASS_DIAGRAM_DIR
        module_dir.mkdir(parents=True, exist_ok=True)
        written = set()
        for module in modules:
            filename = f"{sanitize_identifier(module.name)}.d2"
            if filename in written:
                continue
            written.add(filename)
            graph = build_module_class_graph(classes, module.name)
            path = module_dir / filename
            path.write_text(renderer.render(graph), encoding="utf-8")
            outcome.module_class_paths.append(path)
        self.logger.info("Component class diagrams saved to: %s", module_dir)


def _provider_from_config(config: NestD2Config) -> StaticMetadataProvider:
    return StaticMetadataProvider(
        container=config.component.container,
        default_technology=config.component.default_technology,
        modules=config.modules,
        options=config.class_diagram.to_options(),
    )


__all__ = [
    "COMPONENT_DIAGRAM",
    "CLASS_DIAGRAM_DIR",
    "GLOBAL_CLASS_DIAGRAM",
    "GenerateOutcome",
    "ManifestNotFoundError",
    "Orchestrator",
]
