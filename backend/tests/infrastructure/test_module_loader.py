"""Filesystem Module Loader — tests against real files under tmp_path.

Tests cover:
    - Recursive, sorted, suffix-filtered listing
    - Directory listing skips private and hidden entries
    - Missing root → OSError
    - load() returns a fresh module; import errors → ModuleLoadError
"""

import pytest

from routeforge.core.errors import ModuleLoadError
from routeforge.infrastructure.module_loader import FileModuleLoader


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "users" / "controllers").mkdir(parents=True)
    (tmp_path / "orders").mkdir()
    (tmp_path / "_shared").mkdir()
    (tmp_path / ".cache").mkdir()
    (tmp_path / "users" / "controllers" / "list-users-controller.py").write_text(
        "def handle(input, context):\n    return []\n",
    )
    (tmp_path / "orders" / "create-order-controller.py").write_text(
        "from dataclasses import dataclass\n\n"
        "@dataclass\nclass Order:\n    sku: str\n\n"
        "COUNTER = []\n"
        "def handle(input, context):\n    return Order(input['sku'])\n",
    )
    (tmp_path / "orders" / "notes.txt").write_text("not code")
    (tmp_path / "orders" / "broken-controller.py").write_text("def handle(:\n")
    return tmp_path


def test_list_files_sorted_and_filtered(tree):
    files = FileModuleLoader().list_files(str(tree), ("-controller.py",))

    assert files == sorted(files)
    assert [f.rsplit("/", 1)[-1] for f in files] == [
        "broken-controller.py",
        "create-order-controller.py",
        "list-users-controller.py",
    ]


def test_list_directories_skips_private(tree):
    assert FileModuleLoader().list_directories(str(tree)) == ["orders", "users"]


def test_missing_root_raises_oserror(tmp_path):
    loader = FileModuleLoader()
    with pytest.raises(OSError):
        loader.list_files(str(tmp_path / "missing"), (".py",))
    with pytest.raises(OSError):
        loader.list_directories(str(tmp_path / "missing"))


def test_exists(tree):
    loader = FileModuleLoader()
    assert loader.exists(str(tree / "orders" / "notes.txt"))
    assert not loader.exists(str(tree / "orders"))


@pytest.mark.asyncio
async def test_load_returns_fresh_modules(tree):
    loader = FileModuleLoader()
    path = str(tree / "orders" / "create-order-controller.py")

    first = await loader.load(path)
    first.COUNTER.append(1)
    second = await loader.load(path)

    assert first is not second
    assert second.COUNTER == []
    assert second.handle({"sku": "A1"}, None).sku == "A1"


@pytest.mark.asyncio
async def test_syntax_error_is_module_load_error(tree):
    path = str(tree / "orders" / "broken-controller.py")

    with pytest.raises(ModuleLoadError) as excinfo:
        await FileModuleLoader().load(path)

    assert "SyntaxError" in str(excinfo.value)


@pytest.mark.asyncio
async def test_missing_file_is_module_load_error(tmp_path):
    with pytest.raises(ModuleLoadError):
        await FileModuleLoader().load(str(tmp_path / "nope.py"))
