"""
HTTP fetch helpers — GET, stream to disk, drain.

Every network read in the pipeline goes through here so that timeouts
and error mapping are uniform: anything that keeps a body from being
read becomes a TransportError.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from manifestgate import __version__
from manifestgate.core.errors import TransportError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_USER_AGENT = f"manifest-gate/{__version__}"

# http.client reports truncated bodies and garbled responses outside OSError.
_READ_ERRORS = (OSError, http.client.HTTPException)


@contextmanager
def open_url(url: str, timeout: int = 300) -> Iterator[IO[bytes]]:
    """Open ``url`` for reading and yield the response body stream.

    Raises:
        TransportError: On connection failure, any non-200 status, or a
            protocol error (e.g. a truncated body) while reading.
    """
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    logger.debug("GET %s", url)
    try:
        resp = urllib.request.urlopen(req, timeout=timeout)
    except urllib.error.HTTPError as e:
        raise TransportError(f"received non-200 status for {url}: {e.code} {e.reason}") from e
    except (urllib.error.URLError, *_READ_ERRORS) as e:
        raise TransportError(f"failed to fetch {url}: {e}") from e

    with resp:
        status = getattr(resp, "status", 200)
        if status != 200:
            raise TransportError(f"received non-200 status for {url}: {status}")
        try:
            yield resp
        except http.client.HTTPException as e:
            raise TransportError(f"connection dropped while reading {url}: {e!r}") from e


def drain(stream: IO[bytes]) -> int:
    """Read and discard the rest of ``stream``. Returns bytes discarded."""
    total = 0
    try:
        while chunk := stream.read(_CHUNK_SIZE):
            total += len(chunk)
    except _READ_ERRORS as e:
        raise TransportError(f"connection dropped while reading body: {e}") from e
    return total


def download(url: str, dest: Path, timeout: int = 300) -> Path:
    """Stream ``url`` into ``dest`` without holding the body in memory."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with open_url(url, timeout=timeout) as resp, open(dest, "wb") as fh:
        try:
            while chunk := resp.read(_CHUNK_SIZE):
                fh.write(chunk)
                written += len(chunk)
        except _READ_ERRORS as e:
            raise TransportError(f"download of {url} interrupted: {e}") from e
    logger.info("Downloaded %s (%d bytes)", url, written)
    return dest
