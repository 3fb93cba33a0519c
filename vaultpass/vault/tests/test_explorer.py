"""Tests for the per-engine folder traversal."""

import asyncio

import pytest

from vaultpass.errors import NetworkError
from vaultpass.vault.explorer import FOLDER_CONCURRENCY_LIMIT, FolderExplorer, term_predicate
from vaultpass.vault.models import SecretEngine


def _names(report):
    return sorted(s.full_name for s in report.secrets)


class TestTraversal:
    @pytest.mark.asyncio
    async def test_matches_under_folder_term(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate("work"))
        assert _names(report) == ["personal/alice/work/email", "personal/alice/work/vpn"]
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_failed_folder_is_reported(self, make_vault, personal_engine, alice_tree):
        vault = make_vault(
            [personal_engine],
            {"personal/": alice_tree},
            failures={("personal/", "alice/work"): NetworkError("https://vault/v1/personal/metadata/alice/work")},
        )
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate("work"))
        assert report.secrets == []
        assert len(report.errors) == 1
        assert report.errors[0].path == "alice/work"
        assert report.errors[0].engine == "personal/"
        assert "failed" in report.errors[0].reason

    @pytest.mark.asyncio
    async def test_failed_folder_does_not_stop_siblings(self, make_vault, personal_engine, alice_tree):
        vault = make_vault(
            [personal_engine],
            {"personal/": alice_tree},
            failures={("personal/", "alice/work"): RuntimeError("boom")},
        )
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate([]))
        assert _names(report) == ["personal/alice/netflix"]
        assert [e.path for e in report.errors] == ["alice/work"]

    @pytest.mark.asyncio
    async def test_personal_engine_starts_at_identity(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate(None))
        assert "personal/bob/secret" not in _names(report)
        assert vault.calls[0] == ("personal/", ("alice",))

    @pytest.mark.asyncio
    async def test_shared_engine_starts_at_root(self, make_vault, shared_engine, alice_tree):
        vault = make_vault([shared_engine], {"shared/": alice_tree})
        report = await FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None))
        assert vault.calls[0] == ("shared/", ())
        assert "shared/bob/secret" in _names(report)

    @pytest.mark.asyncio
    async def test_missing_personal_root(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("carol", term_predicate(None))
        assert report.secrets == []
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_ignored_names(self, make_vault, shared_engine):
        tree = {"_data": "x", "_do-not-delete": "x", "real": "x"}
        vault = make_vault([shared_engine], {"shared/": tree})
        report = await FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None))
        assert _names(report) == ["shared/real"]

    @pytest.mark.asyncio
    async def test_secret_fields(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate("vpn"))
        (secret,) = report.secrets
        assert secret.engine is personal_engine
        assert secret.path == "alice/work"
        assert secret.name == "vpn"
        assert secret.full_name == "personal/alice/work/vpn"
        assert secret.is_personal is True
        assert secret.data is None

    @pytest.mark.asyncio
    async def test_leaf_name_match_is_case_insensitive(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate("NETFLIX"))
        assert _names(report) == ["personal/alice/netflix"]

    @pytest.mark.asyncio
    async def test_case_sensitive_predicate(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        predicate = term_predicate("NETFLIX", case_sensitive=True)
        report = await FolderExplorer(vault, personal_engine).explore("alice", predicate)
        assert report.secrets == []

    @pytest.mark.asyncio
    async def test_identity_folder_does_not_match(self, make_vault, personal_engine, alice_tree):
        vault = make_vault([personal_engine], {"personal/": alice_tree})
        report = await FolderExplorer(vault, personal_engine).explore("alice", term_predicate("ali"))
        assert report.secrets == []


def _deep_tree(depth, fanout):
    if depth == 0:
        return {f"leaf{i}": "x" for i in range(fanout)}
    tree = {f"dir{i}": _deep_tree(depth - 1, fanout) for i in range(fanout)}
    tree["top-leaf"] = "x"
    return tree


class TestTermination:
    @pytest.mark.asyncio
    async def test_every_listing_discovers_more_folders(self, make_vault, shared_engine):
        # 3 levels of 3 folders: 1 + 3 + 9 + 27 = 40 listings.
        vault = make_vault([shared_engine], {"shared/": _deep_tree(3, 3)}, delay=0.001)
        report = await asyncio.wait_for(
            FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None)),
            timeout=5,
        )
        assert len(vault.calls) == 40
        # 13 folders with a top-leaf plus 27 folders with 3 leaves each.
        assert len(report.secrets) == 13 + 27 * 3

    @pytest.mark.asyncio
    async def test_each_folder_listed_once(self, make_vault, shared_engine):
        vault = make_vault([shared_engine], {"shared/": _deep_tree(2, 4)})
        await FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None))
        assert len(vault.calls) == len(set(vault.calls))

    @pytest.mark.asyncio
    async def test_empty_engine(self, make_vault, shared_engine):
        vault = make_vault([shared_engine], {})
        report = await FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None))
        assert report.secrets == []
        assert report.errors == []


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_listings_in_flight_are_bounded(self, make_vault, shared_engine):
        tree = {f"dir{i}": {f"sub{j}": {"leaf": "x"} for j in range(5)} for i in range(10)}
        vault = make_vault([shared_engine], {"shared/": tree}, delay=0.002)
        await FolderExplorer(vault, shared_engine).explore("alice", term_predicate(None))
        assert vault.peak == FOLDER_CONCURRENCY_LIMIT

    @pytest.mark.asyncio
    async def test_custom_limit(self, make_vault, shared_engine):
        tree = {f"dir{i}": {"leaf": "x"} for i in range(10)}
        vault = make_vault([shared_engine], {"shared/": tree}, delay=0.002)
        await FolderExplorer(vault, shared_engine, concurrency=2).explore("alice", term_predicate(None))
        assert vault.peak == 2


class TestPredicate:
    def test_matches_leaf(self):
        assert term_predicate("git")(("a", "github"), ())

    def test_matches_folder_below_root(self):
        assert term_predicate("work")(("alice", "work", "vpn"), ("alice",))

    def test_ignores_root_segments(self):
        assert not term_predicate("alice")(("alice", "work", "vpn"), ("alice",))

    def test_no_terms_matches_all(self):
        assert term_predicate([])(("anything",), ())


def test_engine_without_personal_flag_ignores_identity():
    engine = SecretEngine(name="team/")
    assert FolderExplorer(None, engine).root_for("alice") == ()
