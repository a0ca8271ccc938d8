"""Tests for component and class graph assembly."""

from __future__ import annotations

from nestd2.diagrams.graph import (
    IdentifierScope,
    build_class_graph,
    build_component_graph,
    build_module_class_graph,
    resolve_dependency,
)
from nestd2.models import ClassInfo, DependencyInfo, ModuleInfo


def _module(name: str, imports=()) -> ModuleInfo:
    return ModuleInfo(name=name, file_path=f"src/{name}.module.ts", imports=list(imports))


def _cls(name: str, module: str | None = None, deps=()) -> ClassInfo:
    return ClassInfo(
        name=name,
        file_path=f"src/{name}.ts",
        dependencies=list(deps),
        module_context=module,
    )


def test_identifier_scope_suffixes_collisions() -> None:
    scope = IdentifierScope()

    assert scope.allocate("Users.Module") == "Users_Module"
    assert scope.allocate("Users-Module") == "Users_Module_2"
    assert scope.allocate("Users Module") == "Users_Module_3"
    assert scope.allocate("1Module") == "_1Module"


def test_component_graph_drops_unknown_imports() -> None:
    graph = build_component_graph(
        [
            _module("AppModule", imports=["UserModule", "ConfigModule", "TypeOrmModule"]),
            _module("UserModule"),
        ]
    )

    assert graph.container is None
    assert [node.path for node in graph.nodes] == ["AppModule", "UserModule"]
    assert [(edge.source, edge.target, edge.label) for edge in graph.edges] == [
        ("AppModule", "UserModule", "imports")
    ]


def test_component_graph_qualifies_paths_inside_container() -> None:
    graph = build_component_graph(
        [_module("AppModule", imports=["UserModule"]), _module("UserModule")],
        container_title="Billing API",
    )

    assert graph.container == "Billing_API"
    assert graph.title == "Billing API"
    assert graph.edges[0].source == "Billing_API.AppModule"
    assert graph.edges[0].target == "Billing_API.UserModule"


def test_blank_container_title_means_no_container() -> None:
    graph = build_component_graph([_module("AppModule")], container_title="   ")

    assert graph.container is None
    assert graph.title is None


def test_class_graph_groups_by_module_and_links_dependencies() -> None:
    classes = [
        _cls("UserController", "UserModule", [DependencyInfo(name="svc", type="UserService")]),
        _cls(
            "UserService",
            "UserModule",
            [
                DependencyInfo(name="repo", type="Repository", token="UsersRepository"),
                DependencyInfo(name="logger", type="Logger", is_optional=True),
            ],
        ),
        _cls("UsersRepository"),
    ]

    graph = build_class_graph(classes)

    assert [group.identifier for group in graph.groups] == ["UserModule"]
    assert [node.path for node in graph.groups[0].nodes] == [
        "UserModule.UserController",
        "UserModule.UserService",
    ]
    assert [node.path for node in graph.loose] == ["UsersRepository"]
    assert [(edge.source, edge.target) for edge in graph.edges] == [
        ("UserModule.UserController", "UserModule.UserService"),
        ("UserModule.UserService", "UsersRepository"),
    ]


def test_module_class_graph_includes_satellite_targets() -> None:
    classes = [
        _cls("OrdersService", "OrdersModule", [DependencyInfo(name="users", type="UsersService")]),
        _cls("UsersService", "UsersModule", [DependencyInfo(name="repo", type="UsersRepository")]),
        _cls("UsersRepository", "UsersModule"),
    ]

    graph = build_module_class_graph(classes, "OrdersModule")

    assert graph.focus == "OrdersModule"
    assert {(group.module, group.focal) for group in graph.groups} == {
        ("OrdersModule", True),
        ("UsersModule", False),
    }
    assert [node.info.name for node in graph.iter_nodes()] == ["OrdersService", "UsersService"]
    assert [(edge.source, edge.target) for edge in graph.edges] == [
        ("OrdersModule.OrdersService", "UsersModule.UsersService")
    ]


def test_resolve_dependency_prefers_token_naming_a_class() -> None:
    by_name = {"Repository": _cls("Repository"), "UsersRepository": _cls("UsersRepository")}

    with_token = DependencyInfo(name="repo", type="Repository", token="UsersRepository")
    string_token = DependencyInfo(name="repo", type="Repository", token="USER_REPO")

    assert resolve_dependency(with_token, by_name).name == "UsersRepository"
    assert resolve_dependency(string_token, by_name).name == "Repository"
    assert resolve_dependency(DependencyInfo(name="x", type="Missing"), by_name) is None
