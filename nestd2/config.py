"""Configuration loading for nest-d2 (.nestd2.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import ClassDiagramOptions, ModuleMetadata

CONFIG_FILENAME = ".nestd2.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ComponentConfig:
    """Component diagram settings."""

    container: Optional[str] = None
    default_technology: Optional[str] = None
    show_nesting: Optional[bool] = None


@dataclass
class ClassDiagramConfig:
    """Class diagram member settings."""

    include_attributes: bool = True
    include_methods: bool = True

    def to_options(self) -> ClassDiagramOptions:
        return ClassDiagramOptions(
            include_attributes=self.include_attributes,
            include_methods=self.include_methods,
        )


@dataclass
class NestD2Config:
    """Represents the settings defined in .nestd2.yml."""

    root: Path
    output: Optional[Path] = None
    source_dir: str = "src"
    module_suffix: str = ".module.ts"
    exclude_paths: List[str] = field(default_factory=list)
    component: ComponentConfig = field(default_factory=ComponentConfig)
    class_diagram: ClassDiagramConfig = field(default_factory=ClassDiagramConfig)
    modules: Dict[str, ModuleMetadata] = field(default_factory=dict)


def load_config(config_path: Path) -> NestD2Config:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return NestD2Config(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    output_str = _as_str(data.get("output"))
    output = root / output_str if output_str else None

    component_data = _as_dict(data.get("component"))
    component = ComponentConfig(
        container=_as_str(component_data.get("container")),
        default_technology=_as_str(component_data.get("default_technology")),
        show_nesting=_as_bool(component_data.get("show_nesting")),
    )

    class_data = _as_dict(data.get("class_diagram"))
    include_attributes = _as_bool(class_data.get("include_attributes"))
    include_methods = _as_bool(class_data.get("include_methods"))
    class_diagram = ClassDiagramConfig(
        include_attributes=True if include_attributes is None else include_attributes,
        include_methods=True if include_methods is None else include_methods,
    )

    modules: Dict[str, ModuleMetadata] = {}
    for name, entry in _as_dict(data.get("modules")).items():
        entry_data = _as_dict(entry)
        modules[str(name)] = ModuleMetadata(
            technology=_as_str(entry_data.get("technology")) or "",
            description=_as_str(entry_data.get("description")) or "",
        )

    return NestD2Config(
        root=root,
        output=output,
        source_dir=_as_str(data.get("source_dir")) or "src",
        module_suffix=_as_str(data.get("module_suffix")) or ".module.ts",
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        component=component,
        class_diagram=class_diagram,
        modules=modules,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ClassDiagramConfig",
    "ComponentConfig",
    "ConfigError",
    "NestD2Config",
    "load_config",
]
