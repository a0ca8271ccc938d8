"""Core data models shared across nest-d2 components."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ClassKind(str, Enum):
    """Architectural role of a class, derived once from its decorators and heritage."""

    CONTROLLER = "controller"
    SERVICE = "service"
    GUARD = "guard"
    INTERCEPTOR = "interceptor"
    PIPE = "pipe"
    FILTER = "filter"
    MIDDLEWARE = "middleware"
    OTHER = "other"


@dataclass
class ProjectManifest:
    """Normalized view of the TypeScript sources handed to analyzers."""

    root: str
    module_files: List[str]
    source_files: List[str]


@dataclass
class ModuleInfo:
    """A class decorated with ``@Module`` and the lists from its configuration."""

    name: str
    file_path: str
    imports: List[str] = field(default_factory=list)
    providers: List[str] = field(default_factory=list)
    controllers: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    guards: List[str] = field(default_factory=list)
    interceptors: List[str] = field(default_factory=list)
    pipes: List[str] = field(default_factory=list)
    filters: List[str] = field(default_factory=list)
    technology: str = ""
    description: str = ""

    def owned_names(self) -> List[str]:
        """Return every class name the module declares, in declaration order."""
        return [
            *self.controllers,
            *self.providers,
            *self.guards,
            *self.interceptors,
            *self.pipes,
            *self.filters,
        ]


@dataclass
class DependencyInfo:
    """Constructor parameter that the DI container resolves."""

    name: str
    type: str
    is_optional: bool = False
    token: Optional[str] = None


@dataclass
class PropertyInfo:
    name: str
    type: str
    visibility: str = "public"
    is_readonly: bool = False


@dataclass
class MethodInfo:
    name: str
    return_type: str
    visibility: str = "public"
    parameters: List[str] = field(default_factory=list)


@dataclass
class ClassInfo:
    """A class declaration together with its injection and member details."""

    name: str
    file_path: str
    dependencies: List[DependencyInfo] = field(default_factory=list)
    properties: List[PropertyInfo] = field(default_factory=list)
    methods: List[MethodInfo] = field(default_factory=list)
    is_injectable: bool = False
    kind: ClassKind = ClassKind.OTHER
    module_context: Optional[str] = None


@dataclass
class ModuleMetadata:
    """Human-entered details attached to a module in the component diagram."""

    technology: str = ""
    description: str = ""

    def is_empty(self) -> bool:
        return not (self.technology or self.description)


@dataclass
class ClassDiagramOptions:
    """Which class members are written into class diagrams."""

    include_attributes: bool = True
    include_methods: bool = True
