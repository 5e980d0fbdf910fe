"""Tests for installed-tree loading and the npm tree engine."""

import asyncio
import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from common.errors import InstallError
from tree import NpmTreeEngine, Node, Tree, load_actual


def _write_package(directory, doc):
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, "package.json"), "w", encoding="utf-8") as f:
        json.dump(doc, f)


class TestLoadActual:
    """Walking node_modules into a Tree."""

    def test_missing_node_modules_gives_empty_tree(self, tmp_path):
        tree = load_actual(str(tmp_path))
        assert len(tree) == 0
        assert tree.query("anything") == []

    def test_scoped_and_nested_packages(self, tmp_path):
        nm = tmp_path / "node_modules"
        _write_package(nm / "foo", {"name": "foo", "version": "1.0.0", "bin": "cli.js"})
        _write_package(nm / "@scope" / "bar", {"name": "@scope/bar", "version": "2.0.0"})
        _write_package(nm / "foo" / "node_modules" / "baz", {"name": "baz", "version": "0.3.0"})
        (nm / ".bin").mkdir()

        tree = load_actual(str(tmp_path))

        assert sorted(n.pkgid for n in tree) == ["@scope/bar@2.0.0", "baz@0.3.0", "foo@1.0.0"]
        foo = tree.query("foo")[0]
        assert foo.location == "node_modules/foo"
        assert dict(foo.bin) == {"foo": "cli.js"}
        assert tree.query("baz")[0].location == "node_modules/foo/node_modules/baz"

    def test_resolved_from_hidden_lockfile(self, tmp_path):
        nm = tmp_path / "node_modules"
        _write_package(nm / "foo", {"name": "foo", "version": "1.0.0", "_resolved": "https://old/foo.tgz"})
        _write_package(nm / "tgz", {"name": "tgz", "version": "1.0.0"})
        (nm / ".package-lock.json").write_text(json.dumps({
            "packages": {
                "node_modules/foo": {"resolved": "https://r/foo-1.0.0.tgz"},
                "node_modules/tgz": {"resolved": "file:../tgz-1.0.0.tgz"},
            }
        }))

        tree = load_actual(str(tmp_path))

        assert tree.query("foo")[0].resolved == "https://r/foo-1.0.0.tgz"
        expected = os.path.normpath(os.path.join(str(tmp_path), "..", "tgz-1.0.0.tgz"))
        assert tree.query("tgz")[0].resolved == f"file:{expected}"

    def test_legacy_resolved_field(self, tmp_path):
        _write_package(
            tmp_path / "node_modules" / "foo",
            {"name": "foo", "version": "1.0.0", "_resolved": "https://r/foo-1.0.0.tgz"},
        )
        assert load_actual(str(tmp_path)).query("foo")[0].resolved == "https://r/foo-1.0.0.tgz"

    def test_symlinked_directory_install(self, tmp_path):
        source = tmp_path / "src" / "linked"
        _write_package(source, {"name": "linked", "version": "0.0.1"})
        project = tmp_path / "project"
        (project / "node_modules").mkdir(parents=True)
        os.symlink(str(source), str(project / "node_modules" / "linked"))

        node = load_actual(str(project)).query("linked")[0]

        assert node.resolved == f"file:{os.path.realpath(str(source))}"

    def test_unreadable_package_is_skipped(self, tmp_path):
        broken = tmp_path / "node_modules" / "broken"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("{not json")
        _write_package(tmp_path / "node_modules" / "ok", {"name": "ok", "version": "1.0.0"})

        tree = load_actual(str(tmp_path))

        assert [n.name for n in tree] == ["ok"]


class TestTreeModel:
    """Tree queries."""

    def test_query_by_name(self):
        tree = Tree("/p", [
            Node("foo", "1.0.0", "node_modules/foo"),
            Node("foo", "2.0.0", "node_modules/x/node_modules/foo"),
            Node("bar", "1.0.0", "node_modules/bar"),
        ])
        assert [n.version for n in tree.query("foo")] == ["1.0.0", "2.0.0"]
        assert tree.query("missing") == []
        assert "nodes=3" in repr(tree)


class TestNpmTreeEngine:
    """npm-backed reification."""

    def test_install_command(self):
        engine = NpmTreeEngine(registry="https://registry.example/")
        cmd = engine.build_install_command("/cache/abc", ["foo@1.0.0", "file:/src/bar"])
        assert cmd == [
            "npm", "install", "--no-audit", "--no-fund", "--prefix", "/cache/abc",
            "--registry", "https://registry.example/", "foo@1.0.0", "file:/src/bar",
        ]

    def test_reify_runs_npm_in_target(self, tmp_path):
        proc = MagicMock()
        proc.wait = AsyncMock(return_value=0)
        engine = NpmTreeEngine()
        with patch("tree.engine.asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)) as spawn:
            asyncio.run(engine.reify(str(tmp_path), ["foo@1.0.0"]))
        args, kwargs = spawn.await_args
        assert args[:2] == ("npm", "install")
        assert args[-1] == "foo@1.0.0"
        assert kwargs["cwd"] == str(tmp_path)

    def test_reify_nothing_is_noop(self, tmp_path):
        engine = NpmTreeEngine()
        with patch("tree.engine.asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            asyncio.run(engine.reify(str(tmp_path), []))
        spawn.assert_not_awaited()

    def test_reify_failure(self, tmp_path):
        proc = MagicMock()
        proc.wait = AsyncMock(return_value=1)
        engine = NpmTreeEngine()
        with patch("tree.engine.asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            with pytest.raises(InstallError) as excinfo:
                asyncio.run(engine.reify(str(tmp_path), ["foo@1.0.0"]))
        assert excinfo.value.status == 1

    def test_npm_missing(self, tmp_path):
        engine = NpmTreeEngine(npm="npm-does-not-exist")
        with patch(
            "tree.engine.asyncio.create_subprocess_exec",
            new=AsyncMock(side_effect=FileNotFoundError()),
        ):
            with pytest.raises(InstallError):
                asyncio.run(engine.reify(str(tmp_path), ["foo@1.0.0"]))

    def test_load_actual_runs_loader(self, tmp_path):
        _write_package(tmp_path / "node_modules" / "foo", {"name": "foo", "version": "1.0.0"})
        tree = asyncio.run(NpmTreeEngine().load_actual(str(tmp_path)))
        assert tree.query("foo")[0].version == "1.0.0"
