import json
import os
from pathlib import Path

import pytest

from exportmap.resolvers import NodePathResolver


# ------------------------------------------------------------------ #
# helpers
# ------------------------------------------------------------------ #
def _touch(path: Path, text: str = "export default 1\n") -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return os.path.abspath(path)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    _touch(tmp_path / "src" / "app.js")
    _touch(tmp_path / "src" / "util.js")
    _touch(tmp_path / "src" / "types.ts")
    _touch(tmp_path / "src" / "lib" / "index.js")
    _touch(tmp_path / "node_modules" / "left-pad" / "lib" / "pad.js")
    _touch(
        tmp_path / "node_modules" / "left-pad" / "package.json",
        json.dumps({"name": "left-pad", "main": "lib/pad.js"}),
    )
    _touch(tmp_path / "node_modules" / "esm-only" / "index.mjs")
    _touch(tmp_path / "node_modules" / "esm-only" / "es" / "index.js")
    _touch(
        tmp_path / "node_modules" / "esm-only" / "package.json",
        json.dumps({"module": "es", "main": "index.mjs"}),
    )
    _touch(tmp_path / "node_modules" / "@scope" / "pkg" / "index.js")
    return tmp_path


def _importer(project: Path) -> str:
    return str(project / "src" / "app.js")


# ------------------------------------------------------------------ #
# tests
# ------------------------------------------------------------------ #
def test_relative_paths(project):
    resolver = NodePathResolver()
    importer = _importer(project)

    assert resolver.resolve("./util", importer, {}) == str(project / "src" / "util.js")
    assert resolver.resolve("./util.js", importer, {}) == str(project / "src" / "util.js")
    assert resolver.resolve("./types", importer, {}) == str(project / "src" / "types.ts")
    assert resolver.resolve("./lib", importer, {}) == str(project / "src" / "lib" / "index.js")
    assert resolver.resolve("../src/util", importer, {}) == str(project / "src" / "util.js")
    assert resolver.resolve("./missing", importer, {}) is None


def test_absolute_path(project):
    resolver = NodePathResolver()
    target = str(project / "src" / "util")

    assert resolver.resolve(target, _importer(project), {}) == target + ".js"


def test_packages(project):
    resolver = NodePathResolver()
    importer = _importer(project)
    modules = project / "node_modules"

    assert resolver.resolve("left-pad", importer, {}) == str(modules / "left-pad" / "lib" / "pad.js")
    # "module" takes precedence over "main"
    assert resolver.resolve("esm-only", importer, {}) == str(
        modules / "esm-only" / "es" / "index.js"
    )
    assert resolver.resolve("@scope/pkg", importer, {}) == str(
        modules / "@scope" / "pkg" / "index.js"
    )
    assert resolver.resolve("not-installed", importer, {}) is None


def test_builtins_are_not_resolved(project):
    resolver = NodePathResolver()
    importer = _importer(project)

    assert resolver.resolve("fs", importer, {}) is None
    assert resolver.resolve("fs/promises", importer, {}) is None
    assert resolver.resolve("node:fs", importer, {}) is None
    assert resolver.resolve("", importer, {}) is None


def test_resolver_settings(project):
    resolver = NodePathResolver()
    importer = _importer(project)
    _touch(project / "vendor" / "shim.js")
    _touch(project / "web_modules" / "widget" / "index.js")

    # only .ts is probed
    assert resolver.resolve("./util", importer, {"extensions": [".ts"]}) is None
    assert resolver.resolve("./types", importer, {"extensions": [".ts"]}) == str(
        project / "src" / "types.ts"
    )
    assert resolver.resolve(
        "widget", importer, {"module_directories": ["web_modules"]}
    ) == str(project / "web_modules" / "widget" / "index.js")
    assert resolver.resolve("shim", importer, {"paths": [str(project / "vendor")]}) == str(
        project / "vendor" / "shim.js"
    )


def test_unreadable_package_json_falls_back_to_index(project):
    pkg = project / "node_modules" / "broken"
    _touch(pkg / "package.json", "{ not json")
    _touch(pkg / "index.js")

    assert NodePathResolver().resolve("broken", _importer(project), {}) == str(pkg / "index.js")
