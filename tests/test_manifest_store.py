"""
Tests for manifest fetching, caching and parsing
"""

import os
import time

import httpx
import pytest

from core.manifest_store import ManifestSnapshot, ManifestStore, parse_manifest

from conftest import MANIFEST_URL, MANIFEST_YAML

EIGHT_DAYS = 8 * 24 * 60 * 60


def _serve(content, calls=None, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        return httpx.Response(status_code, content=content)

    return httpx.MockTransport(handler)


def _unreachable(calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        raise httpx.ConnectError("host unreachable", request=request)

    return httpx.MockTransport(handler)


def _make_stale(path):
    old = time.time() - EIGHT_DAYS
    os.utime(path, (old, old))


class TestParseManifest:
    def test_games_in_document_order(self):
        snapshot = parse_manifest(MANIFEST_YAML)
        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest"]

    def test_paths_for_known_game(self):
        snapshot = parse_manifest(MANIFEST_YAML)
        templates = snapshot.paths_for("Foo")
        assert len(templates) == 1
        assert templates[0].template == "<documents>/Foo/save.dat"
        assert templates[0].tags == ["save"]
        assert templates[0].when == [{"os": "windows"}]

    def test_missing_optional_fields_default(self):
        snapshot = parse_manifest(MANIFEST_YAML)
        assert [t.template for t in snapshot.paths_for("Bar")] == ["<documents>/Bar/saves"]
        assert snapshot.paths_for("Bar")[0].tags == []
        assert snapshot.paths_for("Baz Quest") == []

    def test_bare_file_entry(self):
        snapshot = parse_manifest("Qux:\n  files:\n    <home>/.qux/save:\n")
        assert [t.template for t in snapshot.paths_for("Qux")] == ["<home>/.qux/save"]

    def test_unknown_game_has_no_paths(self):
        assert parse_manifest(MANIFEST_YAML).paths_for("Nope") == []

    def test_search_is_case_insensitive_substring(self):
        snapshot = parse_manifest(MANIFEST_YAML)
        assert snapshot.search_games("BA") == ["Bar", "Baz Quest"]
        assert snapshot.search_games("quest") == ["Baz Quest"]
        assert snapshot.search_games("zzz") == []

    def test_one_malformed_entry_empties_everything(self):
        content = MANIFEST_YAML + "Broken:\n  files:\n    - not-a-mapping\n"
        snapshot = parse_manifest(content)
        assert snapshot.list_games() == []

    def test_malformed_tags_empty_everything(self):
        content = MANIFEST_YAML + "Broken:\n  files:\n    <home>/x:\n      tags: {a: 1}\n"
        assert parse_manifest(content).list_games() == []

    @pytest.mark.parametrize("name", ["OFF", "Yes", "No", "On", "null", "007", "1.5"])
    def test_game_names_are_read_as_written(self, name):
        content = MANIFEST_YAML + f"{name}:\n  files:\n    <documents>/{name}/save.dat: {{}}\n"
        snapshot = parse_manifest(content)
        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest", name]
        assert [t.template for t in snapshot.paths_for(name)] == [f"<documents>/{name}/save.dat"]

    def test_file_templates_are_read_as_written(self):
        snapshot = parse_manifest("Qux:\n  files:\n    0123: {}\n    true:\n")
        assert [t.template for t in snapshot.paths_for("Qux")] == ["0123", "true"]

    @pytest.mark.parametrize("content", ["", "- a\n- b\n", "just a string", "Foo: [1, 2\n"])
    def test_unusable_documents_are_empty(self, content):
        assert parse_manifest(content).list_games() == []

    def test_empty_snapshot(self):
        snapshot = ManifestSnapshot.empty()
        assert len(snapshot) == 0
        assert snapshot.list_games() == []
        assert snapshot.search_games("") == []


class TestStaleness:
    def test_missing_cache_is_stale(self, settings):
        store = ManifestStore(settings)
        assert store.cache_age_seconds() is None
        assert store.is_stale()

    def test_fresh_cache(self, settings):
        store = ManifestStore(settings)
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")
        assert not store.is_stale()

    def test_week_old_cache_is_stale(self, settings):
        store = ManifestStore(settings)
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")
        _make_stale(store.cache_path)
        assert store.is_stale()


class TestAcquire:
    @pytest.mark.asyncio
    async def test_fetch_writes_cache_and_parses(self, settings):
        calls = []
        store = ManifestStore(settings, transport=_serve(MANIFEST_YAML.encode(), calls))

        snapshot = await store.acquire()

        assert calls == [MANIFEST_URL]
        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest"]
        assert store.list_games() == ["Foo", "Bar", "Baz Quest"]
        assert store.cache_path.read_bytes() == MANIFEST_YAML.encode()

    @pytest.mark.asyncio
    async def test_fresh_cache_skips_network(self, settings):
        calls = []
        store = ManifestStore(settings, transport=_serve(b"Other: {}\n", calls))
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")

        snapshot = await store.acquire()

        assert calls == []
        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest"]

    @pytest.mark.asyncio
    async def test_refresh_forces_fetch(self, settings):
        calls = []
        store = ManifestStore(settings, transport=_serve(b"Other: {}\n", calls))
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")

        snapshot = await store.acquire(refresh=True)

        assert len(calls) == 1
        assert snapshot.list_games() == ["Other"]

    @pytest.mark.asyncio
    async def test_stale_cache_refetched(self, settings):
        calls = []
        store = ManifestStore(settings, transport=_serve(b"Other: {}\n", calls))
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")
        _make_stale(store.cache_path)

        snapshot = await store.acquire()

        assert len(calls) == 1
        assert snapshot.list_games() == ["Other"]
        assert not store.is_stale()

    @pytest.mark.asyncio
    async def test_failed_fetch_falls_back_to_cache(self, settings, caplog):
        store = ManifestStore(settings, transport=_unreachable())
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")
        _make_stale(store.cache_path)

        with caplog.at_level("WARNING"):
            snapshot = await store.acquire()

        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest"]
        assert "Failed to fetch manifest" in caplog.text

    @pytest.mark.asyncio
    async def test_error_status_falls_back_to_cache(self, settings):
        store = ManifestStore(settings, transport=_serve(b"Other: {}\n", status_code=503))
        store.cache_path.parent.mkdir(parents=True)
        store.cache_path.write_text(MANIFEST_YAML, encoding="utf-8")
        _make_stale(store.cache_path)

        snapshot = await store.acquire()

        assert snapshot.list_games() == ["Foo", "Bar", "Baz Quest"]
        assert store.cache_path.read_text(encoding="utf-8") == MANIFEST_YAML

    @pytest.mark.asyncio
    async def test_no_cache_and_no_network_is_empty(self, settings):
        store = ManifestStore(settings, transport=_unreachable())

        snapshot = await store.acquire()

        assert snapshot.list_games() == []
        assert not store.cache_path.exists()

    @pytest.mark.asyncio
    async def test_unparseable_fetch_still_cached(self, settings):
        garbage = b"Foo:\n  files: [oops\n"
        store = ManifestStore(settings, transport=_serve(garbage))

        snapshot = await store.acquire()

        assert snapshot.list_games() == []
        assert store.cache_path.read_bytes() == garbage
