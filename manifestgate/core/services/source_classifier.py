"""
CRD source classification — repository, archive, or raw file.

The order of the checks is fixed and matters:

    1. Repository — decided from the URL alone (no network).
    2. Archive    — one GET, signature sniffed from the body prefix.
    3. Raw file   — everything else.

A GitHub "tree" URL and a release-asset URL can both point at
something archive-shaped, so the repository test must run first.
"""

from __future__ import annotations

import logging
from urllib.parse import ParseResult, urlparse

from manifestgate.core.errors import ParseError
from manifestgate.core.models.source import SchemaSource, SchemaSourceKind
from manifestgate.core.services import archives
from manifestgate.core.services.http_fetch import drain, open_url

logger = logging.getLogger(__name__)

REPOSITORY_HOST = "github.com"

# Third path segment that marks a file or release link, not a tree
_NON_TREE_MARKERS = frozenset({"blob", "releases"})


def _parse(url: str) -> ParseResult:
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ParseError(f"malformed CRD source URL {url!r}: {e}") from e
    if not parsed.scheme or not parsed.netloc:
        raise ParseError(f"malformed CRD source URL {url!r}: scheme and host are required")
    return parsed


def is_repository_url(url: str) -> bool:
    """True if ``url`` browses a repository on the known code host."""
    parsed = _parse(url)
    if parsed.hostname != REPOSITORY_HOST:
        return False

    parts = parsed.path.strip("/").split("/")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return False
    if len(parts) > 2 and parts[2] in _NON_TREE_MARKERS:
        return False
    return True


def parse_repository_url(url: str) -> tuple[str, str, str]:
    """Split a repository tree URL into (clone URL, branch, subdir).

    ``https://github.com/org/repo/tree/main/config/crd`` →
    ``("https://github.com/org/repo.git", "main", "config/crd")``

    Raises:
        ParseError: If the path has no ``tree/<branch>`` part.
    """
    parsed = _parse(url)
    parts = parsed.path.split("/")
    if len(parts) < 5:
        raise ParseError(
            f"invalid repository URL format {url!r}: "
            "expected https://<host>/<owner>/<repo>/tree/<branch>[/<subdir>]"
        )

    owner, repo, branch = parts[1], parts[2], parts[4]
    subdir = "/".join(p for p in parts[5:] if p)
    if not branch:
        raise ParseError(f"invalid repository URL format {url!r}: empty branch")

    repo_url = f"https://{parsed.hostname}/{owner}/{repo}.git"
    return repo_url, branch, subdir


def is_archive(url: str, timeout: int = 300) -> bool:
    """Fetch ``url`` and report whether its body is an archive.

    Only a prefix of the body is inspected; the rest is drained so the
    connection is released cleanly.

    Raises:
        TransportError: On fetch failure or non-200 status.
        FormatError: A signature matched but the stream is unreadable.
    """
    with open_url(url, timeout=timeout) as resp:
        prefix = archives.read_prefix(resp)
        fmt = archives.identify(prefix)
        discarded = drain(resp)

    logger.debug(
        "Checked %s: %s (%d bytes sniffed, %d drained)",
        url, fmt.name if fmt else "no archive signature", len(prefix), discarded,
    )
    return fmt is not None


def classify(url: str, timeout: int = 300) -> SchemaSource:
    """Classify a CRD source locator."""
    url = url.strip()
    if is_repository_url(url):
        repo_url, branch, subdir = parse_repository_url(url)
        source = SchemaSource(
            locator=url,
            kind=SchemaSourceKind.REPOSITORY,
            repo_url=repo_url,
            branch=branch,
            subdir=subdir,
        )
    elif is_archive(url, timeout=timeout):
        source = SchemaSource(locator=url, kind=SchemaSourceKind.ARCHIVE)
    else:
        source = SchemaSource(locator=url, kind=SchemaSourceKind.RAW_FILE)

    logger.info("CRD source: %s", source.describe())
    return source


def classify_all(urls: list[str], timeout: int = 300) -> list[SchemaSource]:
    """Classify every locator, in order. The first error aborts."""
    return [classify(url, timeout=timeout) for url in urls]
