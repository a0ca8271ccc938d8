"""Tests for module ownership and relevance filtering."""

from __future__ import annotations

import logging

from nestd2.analyzers.relevance import (
    build_module_index,
    collect_referenced_names,
    filter_relevant_classes,
    select_relevant_classes,
)
from nestd2.models import ClassInfo, DependencyInfo, MethodInfo, ModuleInfo, PropertyInfo


def _cls(name: str, **kwargs) -> ClassInfo:
    return ClassInfo(name=name, file_path=f"src/{name.lower()}.ts", **kwargs)


def test_module_index_covers_every_owned_list() -> None:
    module = ModuleInfo(
        name="AppModule",
        file_path="src/app.module.ts",
        imports=["UsersModule"],
        controllers=["AppController"],
        providers=["AppService"],
        exports=["AppService"],
        guards=["RolesGuard"],
        interceptors=["TimingInterceptor"],
        pipes=["ParsePipe"],
        filters=["HttpFilter"],
    )

    index = build_module_index([module])

    assert index == {
        "AppController": "AppModule",
        "AppService": "AppModule",
        "RolesGuard": "AppModule",
        "TimingInterceptor": "AppModule",
        "ParsePipe": "AppModule",
        "HttpFilter": "AppModule",
    }
    assert "UsersModule" not in index


def test_module_index_keeps_first_owner(caplog) -> None:
    first = ModuleInfo(name="UsersModule", file_path="a", providers=["SharedService"])
    second = ModuleInfo(name="AdminModule", file_path="b", providers=["SharedService"])

    with caplog.at_level(logging.WARNING, logger="nestd2"):
        index = build_module_index([first, second])

    assert index["SharedService"] == "UsersModule"
    assert "SharedService is registered by both UsersModule and AdminModule" in caplog.text


def test_referenced_names_include_signatures() -> None:
    classes = [
        _cls(
            "UsersService",
            dependencies=[DependencyInfo(name="repo", type="Repository", token="USER_REPO")],
            properties=[PropertyInfo(name="cache", type="CacheStore")],
            methods=[
                MethodInfo(
                    name="find",
                    return_type="UserDto\\[\\]",
                    parameters=["filter: Partial<UserFilter>", "page: number"],
                )
            ],
        )
    ]

    referenced = collect_referenced_names(classes)

    assert {"Repository", "USER_REPO", "CacheStore", "UserDto", "Partial", "number"} <= referenced
    assert "" not in referenced


def test_filter_keeps_owned_and_referenced_classes() -> None:
    owned = _cls("UsersService", dependencies=[DependencyInfo(name="repo", type="UsersRepository")])
    referenced = _cls("UsersRepository")
    unrelated = _cls("MigrationScript")

    kept = filter_relevant_classes(
        [owned, referenced, unrelated],
        {"UsersService": "UsersModule"},
        collect_referenced_names([owned, referenced, unrelated]),
    )

    assert [(info.name, info.module_context) for info in kept] == [
        ("UsersService", "UsersModule"),
        ("UsersRepository", None),
    ]
    assert owned.module_context is None


def test_select_relevant_classes_end_to_end() -> None:
    modules = [
        ModuleInfo(
            name="UserModule",
            file_path="src/user.module.ts",
            controllers=["UserController"],
            providers=["UserService"],
        )
    ]
    classes = [
        _cls("UserController", dependencies=[DependencyInfo(name="userService", type="UserService")]),
        _cls("UserService"),
        _cls("Unused"),
    ]

    kept = select_relevant_classes(classes, modules)

    assert {info.name: info.module_context for info in kept} == {
        "UserController": "UserModule",
        "UserService": "UserModule",
    }
