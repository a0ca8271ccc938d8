"""Tests for nestd2.orchestrator."""

from __future__ import annotations

from pathlib import Path

import pytest

from nestd2.config import load_config
from nestd2.interactive import StaticMetadataProvider
from nestd2.models import ModuleMetadata
from nestd2.orchestrator import (
    CLASS_DIAGRAM_DIR,
    COMPONENT_DIAGRAM,
    GLOBAL_CLASS_DIAGRAM,
    ManifestNotFoundError,
    Orchestrator,
)
from tests._fixtures.repo_builder import RepoBuilder


def _write_project(repo_builder: RepoBuilder) -> None:
    repo_builder.write_tsconfig()
    repo_builder.write(
        {
            "src/app.module.ts": """
                import { Module } from '@nestjs/common';
                import { UserModule } from './users/user.module';

                @Module({
                  imports: [UserModule, ConfigModule.forRoot()],
                  controllers: [AppController],
                })
                export class AppModule {}
            """,
            "src/app.controller.ts": """
                @Controller()
                export class AppController {
                  constructor(private readonly users: UserService) {}
                }
            """,
            "src/users/user.module.ts": """
                @Module({
                  controllers: [UserController],
                  providers: [UserService, { provide: 'USER_REPO', useClass: UserRepository }],
                  exports: [UserService],
                })
                export class UserModule {}
            """,
            "src/users/user.controller.ts": """
                @Controller('users')
                export class UserController {
                  constructor(private readonly userService: UserService) {}

                  findAll(): Promise<User[]> {
                    return this.userService.findAll();
                  }
                }
            """,
            "src/users/user.service.ts": """
                @Injectable()
                export class UserService {
                  constructor(
                    @Inject('USER_REPO') private readonly repo: Repository<User>,
                    private readonly logger?: Logger,
                  ) {}
                }
            """,
            "src/users/user.repository.ts": """
                @Injectable()
                export class UserRepository {}
            """,
            "src/users/user.entity.ts": """
                export class User {
                  id: number;
                }
            """,
            "src/scripts/seed.ts": """
                export class SeedScript {}
            """,
        }
    )


def test_run_generate_writes_all_diagrams(repo_builder: RepoBuilder) -> None:
    _write_project(repo_builder)

    outcome = Orchestrator().run_generate(str(repo_builder.path()))

    output = repo_builder.path().resolve() / "diagrams"
    assert outcome.component_path == output / COMPONENT_DIAGRAM
    assert outcome.global_class_path == output / GLOBAL_CLASS_DIAGRAM
    assert sorted(path.name for path in outcome.module_class_paths) == ["AppModule.d2", "UserModule.d2"]
    assert [module.name for module in outcome.modules] == ["AppModule", "UserModule"]

    component = outcome.component_path.read_text(encoding="utf-8")
    assert component.count(" -> ") == 1
    assert "AppModule -> UserModule: imports" in component
    # no metadata was requested, so module contents are drawn instead
    assert 'UserService: "UserService"' in component

    names = {info.name for info in outcome.classes}
    assert names == {"AppController", "UserController", "UserService", "UserRepository", "User"}

    global_text = outcome.global_class_path.read_text(encoding="utf-8")
    assert "AppModule.AppController -> UserModule.UserService: depends on" in global_text
    assert "UserModule.UserController -> UserModule.UserService: depends on" in global_text
    assert "    repo: Repository (@Inject('USER_REPO'))" in global_text
    assert "SeedScript" not in global_text

    app_text = (output / CLASS_DIAGRAM_DIR / "AppModule.d2").read_text(encoding="utf-8")
    assert app_text.startswith("# AppModule Class Diagram")
    assert "UserModule: UserModule {\n  class: [satellite]" in app_text


def test_run_generate_is_idempotent(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    _write_project(repo_builder)
    output = tmp_path / "out"
    provider = StaticMetadataProvider(
        container="Shop",
        default_technology="NestJS",
        modules={"UserModule": ModuleMetadata(technology="TypeORM", description="User accounts")},
    )

    Orchestrator().run_generate(str(repo_builder.path()), str(output), provider=provider)
    first = {path.relative_to(output): path.read_bytes() for path in output.rglob("*.d2")}
    Orchestrator().run_generate(str(repo_builder.path()), str(output), provider=provider)
    second = {path.relative_to(output): path.read_bytes() for path in output.rglob("*.d2")}

    assert first == second
    component = (output / COMPONENT_DIAGRAM).read_text(encoding="utf-8")
    assert "**[Component: TypeORM]**" in component
    assert "User accounts" in component


def test_previous_metadata_is_reused(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    _write_project(repo_builder)
    output = tmp_path / "out"
    seeded = StaticMetadataProvider(
        container="Shop",
        modules={"AppModule": ModuleMetadata(technology="Fastify", description="Entry point")},
    )
    Orchestrator().run_generate(str(repo_builder.path()), str(output), provider=seeded, component_only=True)

    outcome = Orchestrator().run_generate(
        str(repo_builder.path()),
        str(output),
        provider=StaticMetadataProvider(container="Shop", enrich=True),
        component_only=True,
    )

    app = next(module for module in outcome.modules if module.name == "AppModule")
    assert (app.technology, app.description) == ("Fastify", "Entry point")
    assert outcome.global_class_path is None


def test_class_only_skips_component_diagram(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    _write_project(repo_builder)
    output = tmp_path / "out"

    outcome = Orchestrator().run_generate(str(repo_builder.path()), str(output), class_only=True)

    assert outcome.component_path is None
    assert not (output / COMPONENT_DIAGRAM).exists()
    assert (output / GLOBAL_CLASS_DIAGRAM).exists()


def test_run_generate_requires_tsconfig(repo_builder: RepoBuilder) -> None:
    with pytest.raises(ManifestNotFoundError):
        Orchestrator().run_generate(str(repo_builder.path()))


def test_config_file_drives_defaults(repo_builder: RepoBuilder) -> None:
    _write_project(repo_builder)
    repo_builder.write(
        {
            ".nestd2.yml": """
                output: docs/arch
                component:
                  container: Shop
                  default_technology: NestJS 10
                class_diagram:
                  include_methods: false
            """,
        }
    )

    outcome = Orchestrator().run_generate(str(repo_builder.path()))

    assert outcome.component_path == repo_builder.path().resolve() / "docs" / "arch" / COMPONENT_DIAGRAM
    component = outcome.component_path.read_text(encoding="utf-8")
    assert "Shop: |md" in component
    assert "**[Component: NestJS 10]**" in component
    assert "# Methods" not in outcome.global_class_path.read_text(encoding="utf-8")


def test_project_without_modules_writes_empty_diagrams(repo_builder: RepoBuilder) -> None:
    repo_builder.write_tsconfig()

    outcome = Orchestrator().run_generate(str(repo_builder.path()))

    assert outcome.modules == []
    assert outcome.classes == []
    assert outcome.module_class_paths == []
    assert " -> " not in outcome.component_path.read_text(encoding="utf-8")


def test_explicit_config_excludes_are_honoured(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    _write_project(repo_builder)
    repo_builder.write(
        {
            "src/legacy/old.module.ts": """
                @Module({ providers: [OldService] })
                export class OldModule {}
            """,
        }
    )
    custom = tmp_path / "custom.yml"
    custom.write_text('exclude_paths:\n  - "src/legacy/"\n', encoding="utf-8")

    outcome = Orchestrator().run_generate(
        str(repo_builder.path()), str(tmp_path / "out"), config=load_config(custom)
    )

    assert [module.name for module in outcome.modules] == ["AppModule", "UserModule"]
