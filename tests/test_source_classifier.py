"""
Tests for source_classifier — repository / archive / raw file.

Network is replaced by patching ``urllib.request.urlopen``.
"""

import gzip
import http.client
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from manifestgate.core.errors import FormatError, ParseError, TransportError
from manifestgate.core.models.source import SchemaSourceKind
from manifestgate.core.services.source_classifier import (
    classify,
    classify_all,
    is_archive,
    is_repository_url,
    parse_repository_url,
)


_URLOPEN = "urllib.request.urlopen"


# ═══════════════════════════════════════════════════════════════════
#  Repository detection (no network)
# ═══════════════════════════════════════════════════════════════════


class TestIsRepositoryUrl:
    def test_tree_url(self):
        assert is_repository_url("https://github.com/org/repo/tree/main/config/crd")

    def test_owner_and_repo_only(self):
        assert is_repository_url("https://github.com/org/repo")

    def test_blob_link_is_not_repository(self):
        assert not is_repository_url("https://github.com/org/repo/blob/main/crds/widget.yaml")

    def test_release_link_is_not_repository(self):
        url = "https://github.com/org/repo/releases/download/v1.0.0/crds.tar.gz"
        assert not is_repository_url(url)

    def test_other_host_short_circuits(self):
        with patch(_URLOPEN) as urlopen:
            assert not is_repository_url("https://gitlab.com/org/repo/tree/main")
        urlopen.assert_not_called()

    def test_single_segment(self):
        assert not is_repository_url("https://github.com/org")

    def test_raw_githubusercontent_is_not_repository(self):
        assert not is_repository_url("https://raw.githubusercontent.com/org/repo/main/crd.yaml")

    def test_malformed_url(self):
        with pytest.raises(ParseError):
            is_repository_url("not a url")

    def test_idempotent(self):
        url = "https://github.com/org/repo/tree/main/config/crd"
        assert is_repository_url(url) == is_repository_url(url)


class TestParseRepositoryUrl:
    def test_decomposes_tree_url(self):
        repo, branch, subdir = parse_repository_url(
            "https://github.com/org/repo/tree/main/config/crd"
        )
        assert repo == "https://github.com/org/repo.git"
        assert branch == "main"
        assert subdir == "config/crd"

    def test_no_subdir(self):
        repo, branch, subdir = parse_repository_url("https://github.com/org/repo/tree/release-1.2")
        assert repo == "https://github.com/org/repo.git"
        assert branch == "release-1.2"
        assert subdir == ""

    def test_trailing_slash_ignored(self):
        _, _, subdir = parse_repository_url("https://github.com/org/repo/tree/main/crds/")
        assert subdir == "crds"

    def test_too_few_segments(self):
        with pytest.raises(ParseError, match="invalid repository URL format"):
            parse_repository_url("https://github.com/org/repo")


# ═══════════════════════════════════════════════════════════════════
#  Archive detection
# ═══════════════════════════════════════════════════════════════════


class TestIsArchive:
    def test_tar_gz_body(self, fake_response, tar_gz):
        body = tar_gz({"crd.yaml": b"kind: CustomResourceDefinition\n"})
        with patch(_URLOPEN, return_value=fake_response(body)):
            assert is_archive("https://example.com/crds.tar.gz")

    def test_yaml_body(self, fake_response):
        with patch(_URLOPEN, return_value=fake_response(b"kind: CustomResourceDefinition\n")):
            assert not is_archive("https://example.com/crd.yaml")

    def test_body_is_drained(self, fake_response):
        resp = fake_response(b"x" * 100_000)
        with patch(_URLOPEN, return_value=resp):
            assert not is_archive("https://example.com/big.yaml")
        assert resp.closed

    def test_corrupt_gzip_is_format_error(self, fake_response):
        body = b"\x1f\x8b" + b"\xff" * 64
        with patch(_URLOPEN, return_value=fake_response(body)):
            with pytest.raises(FormatError):
                is_archive("https://example.com/broken.gz")

    def test_single_gzip_file_is_archive(self, fake_response):
        body = gzip.compress(b"kind: CustomResourceDefinition\n")
        with patch(_URLOPEN, return_value=fake_response(body)):
            assert is_archive("https://example.com/crd.yaml.gz")

    def test_http_error_is_transport_error(self):
        err = urllib.error.HTTPError("https://example.com/x", 404, "Not Found", hdrs=None, fp=None)
        with patch(_URLOPEN, side_effect=err):
            with pytest.raises(TransportError, match="404"):
                is_archive("https://example.com/x")

    def test_connection_error_is_transport_error(self):
        with patch(_URLOPEN, side_effect=urllib.error.URLError("connection refused")):
            with pytest.raises(TransportError):
                is_archive("https://example.com/x")

    def test_non_200_status(self, fake_response):
        with patch(_URLOPEN, return_value=fake_response(b"", status=204)):
            with pytest.raises(TransportError, match="non-200"):
                is_archive("https://example.com/x")

    def test_truncated_body_is_transport_error(self, fake_response):
        resp = fake_response(b"")
        resp.read = MagicMock(side_effect=http.client.IncompleteRead(b"\x1f", 4096))
        with patch(_URLOPEN, return_value=resp):
            with pytest.raises(TransportError, match="IncompleteRead"):
                is_archive("https://example.com/crds.tar.gz")

    def test_bad_status_line_is_transport_error(self):
        with patch(_URLOPEN, side_effect=http.client.BadStatusLine("garbage")):
            with pytest.raises(TransportError, match="failed to fetch"):
                is_archive("https://example.com/x")


# ═══════════════════════════════════════════════════════════════════
#  classify
# ═══════════════════════════════════════════════════════════════════


class TestClassify:
    def test_repository(self):
        with patch(_URLOPEN) as urlopen:
            source = classify("https://github.com/org/repo/tree/main/config/crd")
        urlopen.assert_not_called()
        assert source.kind == SchemaSourceKind.REPOSITORY
        assert source.repo_url == "https://github.com/org/repo.git"
        assert source.branch == "main"
        assert source.subdir == "config/crd"

    def test_archive(self, fake_response, tar_gz):
        body = tar_gz({"a.yaml": b"a: 1\n"})
        with patch(_URLOPEN, return_value=fake_response(body)):
            source = classify("https://github.com/org/repo/releases/download/v1/crds.tar.gz")
        assert source.kind == SchemaSourceKind.ARCHIVE
        assert source.repo_url is None

    def test_raw_file(self, fake_response):
        with patch(_URLOPEN, return_value=fake_response(b"apiVersion: v1\n")):
            source = classify("https://raw.githubusercontent.com/org/repo/main/crd.yaml")
        assert source.kind == SchemaSourceKind.RAW_FILE

    def test_deterministic(self, fake_response):
        url = "https://example.com/crd.yaml"
        with patch(_URLOPEN, side_effect=lambda *a, **kw: fake_response(b"kind: X\n")):
            first = classify(url)
            second = classify(url)
        assert first == second

    def test_repository_without_tree_is_parse_error(self):
        with pytest.raises(ParseError):
            classify("https://github.com/org/repo")

    def test_classify_all_stops_at_first_error(self):
        with patch(_URLOPEN, side_effect=urllib.error.URLError("down")) as urlopen:
            with pytest.raises(TransportError):
                classify_all([
                    "https://example.com/a.yaml",
                    "https://example.com/b.yaml",
                ])
        assert urlopen.call_count == 1
