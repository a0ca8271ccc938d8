"""Tests for nestd2.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from nestd2.config import ConfigError, NestD2Config, load_config
from nestd2.models import ClassDiagramOptions, ModuleMetadata


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, NestD2Config)
    assert config.root == tmp_path.resolve()
    assert config.output is None
    assert config.source_dir == "src"
    assert config.module_suffix == ".module.ts"
    assert config.exclude_paths == []
    assert config.component.container is None
    assert config.component.show_nesting is None
    assert config.class_diagram.to_options() == ClassDiagramOptions()
    assert config.modules == {}


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".nestd2.yml"
    config_file.write_text(
        """
output: docs/diagrams
source_dir: apps/api/src
module_suffix: ".mod.ts"
exclude_paths:
  - "legacy/"
  - "**/*.spec.ts"
component:
  container: "Shop API"
  default_technology: "NestJS 10"
  show_nesting: yes
class_diagram:
  include_attributes: false
  include_methods: "true"
modules:
  UsersModule:
    technology: TypeORM
    description: Manages user accounts
  AppModule: {}
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.output == tmp_path.resolve() / "docs" / "diagrams"
    assert config.source_dir == "apps/api/src"
    assert config.module_suffix == ".mod.ts"
    assert config.exclude_paths == ["legacy/", "**/*.spec.ts"]
    assert config.component.container == "Shop API"
    assert config.component.default_technology == "NestJS 10"
    assert config.component.show_nesting is True
    assert config.class_diagram.include_attributes is False
    assert config.class_diagram.include_methods is True
    assert config.modules == {
        "UsersModule": ModuleMetadata(technology="TypeORM", description="Manages user accounts"),
        "AppModule": ModuleMetadata(),
    }


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".nestd2.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.source_dir == "src"


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".nestd2.yml").write_text("component: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_non_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".nestd2.yml").write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)
