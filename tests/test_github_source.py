"""
RepositoryResolver Tests

Branch resolution and tree listing against mocked GitHub API responses.
"""

from unittest.mock import MagicMock

import pytest
import requests

from depotfetch.download.github_source import RepositoryResolver
from depotfetch.download.interfaces import PathEntry, PathKind, RevisionInfo

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]


def _json_response(status_code, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def resolver(session):
    return RepositoryResolver(session, timeout=10)


class TestResolveRevision:
    def test_reads_commit_sha(self, resolver, session):
        session.get.return_value = _json_response(200, {"commit": {"sha": "abc123"}})

        assert resolver.resolve_revision("owner/repo", "730") == RevisionInfo("abc123")
        session.get.assert_called_once_with(
            "https://api.github.com/repos/owner/repo/branches/730", timeout=10
        )

    def test_missing_branch_is_none(self, resolver, session):
        session.get.return_value = _json_response(404, {"message": "Branch not found"})

        assert resolver.resolve_revision("owner/repo", "1") is None

    def test_transport_failure_is_none(self, resolver, session):
        session.get.side_effect = requests.ConnectionError("dns")

        assert resolver.resolve_revision("owner/repo", "1") is None

    def test_malformed_json_is_none(self, resolver, session):
        session.get.return_value = _json_response(200, json_error=ValueError("bad json"))

        assert resolver.resolve_revision("owner/repo", "1") is None

    @pytest.mark.parametrize(
        "payload", [{}, {"commit": {}}, {"commit": "abc"}, [], {"commit": {"sha": ""}}]
    )
    def test_missing_sha_is_none(self, resolver, session, payload):
        session.get.return_value = _json_response(200, payload)

        assert resolver.resolve_revision("owner/repo", "1") is None


class TestListBlobPaths:
    def test_keeps_only_blobs_in_listing_order(self, resolver, session):
        session.get.return_value = _json_response(
            200,
            {
                "tree": [
                    {"path": "z.lua", "type": "blob"},
                    {"path": "dir", "type": "tree"},
                    {"path": "dir/b.manifest", "type": "blob"},
                    {"path": "sub", "type": "commit"},
                    {"path": "a.bin", "type": "blob"},
                ]
            },
        )

        entries = resolver.list_blob_paths("owner/repo", "abc123")

        assert entries == [
            PathEntry("z.lua", PathKind.BLOB),
            PathEntry("dir/b.manifest", PathKind.BLOB),
            PathEntry("a.bin", PathKind.BLOB),
        ]
        session.get.assert_called_once_with(
            "https://api.github.com/repos/owner/repo/git/trees/abc123?recursive=1",
            timeout=10,
        )

    def test_empty_tree_is_empty_list(self, resolver, session):
        session.get.return_value = _json_response(200, {"tree": []})

        assert resolver.list_blob_paths("owner/repo", "abc") == []

    def test_failure_is_none(self, resolver, session):
        session.get.return_value = _json_response(500, {})

        assert resolver.list_blob_paths("owner/repo", "abc") is None

    def test_missing_tree_key_is_none(self, resolver, session):
        session.get.return_value = _json_response(200, {"sha": "abc"})

        assert resolver.list_blob_paths("owner/repo", "abc") is None

    def test_truncated_listing_warns(self, resolver, session, mocker):
        session.get.return_value = _json_response(
            200, {"tree": [{"path": "a.lua", "type": "blob"}], "truncated": True}
        )
        mock_logger = mocker.patch("depotfetch.download.github_source.logger")

        entries = resolver.list_blob_paths("owner/repo", "abc")

        assert entries == [PathEntry("a.lua")]
        assert "truncated" in mock_logger.warning.call_args[0][0]

    def test_ignores_malformed_items(self, resolver, session):
        session.get.return_value = _json_response(
            200, {"tree": ["junk", {"type": "blob"}, {"path": "ok.lua", "type": "blob"}]}
        )

        assert resolver.list_blob_paths("owner/repo", "abc") == [PathEntry("ok.lua")]
