"""Tests for manifest memoization and tree membership checks."""

import asyncio

import pytest

from common.errors import FetchError
from execution.manifest_cache import ManifestCache
from execution.membership import missing_from_tree
from registry.manifest import Manifest
from specifier import classify
from tree.models import Node, Tree


class FakeFetch:
    """Fetch function that records calls and serves canned manifests."""

    def __init__(self, manifests=None, gate=None, error=None):
        self.manifests = manifests or {}
        self.gate = gate
        self.error = error
        self.calls = []

    async def __call__(self, spec, opts):
        self.calls.append(spec.raw)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.manifests[spec.raw]


def _manifest(name, version, resolved=None):
    return Manifest(name, version, resolved or f"https://r/{name}-{version}.tgz", f"{name}@{version}")


class TestManifestCache:
    """Single-flight memoization keyed by raw text."""

    def test_concurrent_requests_share_one_fetch(self):
        async def scenario():
            gate = asyncio.Event()
            fetch = FakeFetch({"foo@^1": _manifest("foo", "1.2.0")}, gate=gate)
            cache = ManifestCache(fetch)
            spec = classify("foo@^1")
            waiters = [asyncio.ensure_future(cache.resolve(spec)) for _ in range(5)]
            await asyncio.sleep(0)
            gate.set()
            results = await asyncio.gather(*waiters)
            return fetch, cache, results

        fetch, cache, results = asyncio.run(scenario())

        assert fetch.calls == ["foo@^1"]
        assert cache.fetch_count == 1
        assert all(r is results[0] for r in results)
        assert "foo@^1" in cache

    def test_distinct_raw_text_fetches_separately(self):
        fetch = FakeFetch({
            "foo@1.2.0": _manifest("foo", "1.2.0"),
            "foo@v1.2.0": _manifest("foo", "1.2.0"),
        })
        cache = ManifestCache(fetch)

        async def scenario():
            await cache.resolve(classify("foo@1.2.0"))
            await cache.resolve(classify("foo@v1.2.0"))
            await cache.resolve(classify("foo@1.2.0"))

        asyncio.run(scenario())

        assert fetch.calls == ["foo@1.2.0", "foo@v1.2.0"]
        assert len(cache) == 2

    def test_failure_is_shared_and_not_retried(self):
        fetch = FakeFetch(error=FetchError("404 Not Found - GET foo"))
        cache = ManifestCache(fetch)
        spec = classify("foo")

        async def scenario():
            outcomes = []
            for _ in range(2):
                try:
                    await cache.resolve(spec)
                except FetchError as exc:
                    outcomes.append(str(exc))
            return outcomes

        assert asyncio.run(scenario()) == ["404 Not Found - GET foo"] * 2
        assert fetch.calls == ["foo"]


class TestMissingFromTree:
    """Deciding whether a requested package is already installed."""

    def _tree(self, *nodes):
        return Tree("/project", nodes)

    def _check(self, raw, tree, fetch):
        async def scenario():
            return await missing_from_tree(classify(raw, "/project"), tree, ManifestCache(fetch))
        return asyncio.run(scenario())

    def test_range_satisfied_without_fetch(self):
        fetch = FakeFetch()
        tree = self._tree(Node("foo", "2.1.0", "node_modules/foo"))
        assert self._check("foo@^2.0.0", tree, fetch) is None
        assert fetch.calls == []

    def test_version_mismatch_returns_manifest(self):
        wanted = _manifest("foo", "3.0.0")
        fetch = FakeFetch({"foo@3.0.0": wanted})
        tree = self._tree(Node("foo", "2.1.0", "node_modules/foo"))
        assert self._check("foo@3.0.0", tree, fetch) is wanted

    def test_exact_version_present(self):
        fetch = FakeFetch()
        tree = self._tree(Node("foo", "3.0.0", "node_modules/foo"))
        assert self._check("foo@v3.0.0", tree, fetch) is None

    def test_bare_name_accepts_any_installed_version(self):
        fetch = FakeFetch()
        tree = self._tree(Node("foo", "0.0.1", "node_modules/foo"))
        assert self._check("foo", tree, fetch) is None
        assert fetch.calls == []

    def test_bare_name_absent_fetches(self):
        wanted = _manifest("foo", "2.0.0")
        fetch = FakeFetch({"foo": wanted})
        assert self._check("foo", self._tree(), fetch) is wanted

    def test_explicit_tag_compares_resolved_ids(self):
        tagged = _manifest("foo", "3.0.0-beta.1")
        fetch = FakeFetch({"foo@next": tagged})
        stale = self._tree(Node("foo", "2.0.0", "node_modules/foo", resolved="https://r/foo-2.0.0.tgz"))
        current = self._tree(Node("foo", "3.0.0-beta.1", "node_modules/foo", resolved=tagged.resolved))

        assert self._check("foo@next", stale, fetch) is tagged
        assert self._check("foo@next", current, fetch) is None
        assert fetch.calls == ["foo@next", "foo@next"]

    def test_directory_source_matches_on_resolved(self):
        local = Manifest("my-cli", "0.1.0", "file:/src/my-cli", "file:/src/my-cli")
        fetch = FakeFetch({"/src/my-cli": local})
        installed = self._tree(Node("my-cli", "0.1.0", "node_modules/my-cli", resolved="file:/src/my-cli"))
        other = self._tree(Node("my-cli", "0.1.0", "node_modules/my-cli", resolved="file:/elsewhere"))

        assert self._check("/src/my-cli", installed, fetch) is None
        assert self._check("/src/my-cli", other, fetch) is local

    def test_fetch_error_propagates(self):
        fetch = FakeFetch(error=FetchError("boom"))
        with pytest.raises(FetchError):
            self._check("foo@1.0.0", self._tree(), fetch)
