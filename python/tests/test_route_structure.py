"""Structural tests for route code.

Verifies that routes follow the service/route separation rule:
- Routes may not contain domain logic or raw DB access
- Routes may only import from allowed modules
"""

import ast
from pathlib import Path

import pytest

ROUTES_DIR = Path(__file__).parent.parent / "chatsync" / "api" / "routes"

ALLOWED_MODULES = (
    "fastapi",
    "typing",
    "sqlalchemy.orm",  # Only for the Session type annotation
    "chatsync.api.deps",
    "chatsync.auth.middleware",
    "chatsync.responses",
    "chatsync.errors",
    "chatsync.schemas",
    "chatsync.services",
)


def get_all_route_files() -> list[Path]:
    return sorted(f for f in ROUTES_DIR.iterdir() if f.suffix == ".py" and f.name != "__init__.py")


def parse(route_file: Path) -> ast.Module:
    return ast.parse(route_file.read_text())


@pytest.fixture(params=get_all_route_files(), ids=lambda f: f.name)
def route_file(request) -> Path:
    return request.param


class TestForbiddenImports:
    def test_only_allowed_modules(self, route_file: Path):
        for node in ast.walk(parse(route_file)):
            if isinstance(node, ast.ImportFrom) and node.module:
                assert node.module.startswith(ALLOWED_MODULES), (
                    f"{route_file.name}: forbidden import from '{node.module}'"
                )
            elif isinstance(node, ast.Import):
                for alias in node.names:
                    assert alias.name.startswith(ALLOWED_MODULES), (
                        f"{route_file.name}: forbidden import '{alias.name}'"
                    )

    def test_only_session_from_sqlalchemy(self, route_file: Path):
        for node in ast.walk(parse(route_file)):
            if isinstance(node, ast.ImportFrom) and node.module == "sqlalchemy.orm":
                assert [a.name for a in node.names] == ["Session"]

    def test_no_raw_db_operations(self, route_file: Path):
        for node in ast.walk(parse(route_file)):
            if (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Attribute)
                and isinstance(node.func.value, ast.Name)
                and node.func.value.id in ("db", "session")
            ):
                pytest.fail(
                    f"{route_file.name}: forbidden call '{node.func.value.id}.{node.func.attr}()'"
                )


class TestRouteFileStructure:
    def test_defines_router(self, route_file: Path):
        names = {
            target.id
            for node in ast.walk(parse(route_file))
            if isinstance(node, ast.Assign)
            for target in node.targets
            if isinstance(target, ast.Name)
        }
        assert "router" in names, f"{route_file.name} must define a 'router' object"

    def test_handlers_return_dict(self, route_file: Path):
        for node in ast.walk(parse(route_file)):
            if not isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
                continue
            decorated = any(
                isinstance(d, ast.Call)
                and isinstance(d.func, ast.Attribute)
                and isinstance(d.func.value, ast.Name)
                and d.func.value.id == "router"
                for d in node.decorator_list
            )
            if decorated:
                assert isinstance(node.returns, ast.Name) and node.returns.id == "dict", (
                    f"{route_file.name}:{node.name} should return dict"
                )
