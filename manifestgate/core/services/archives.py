"""
Archive identification and extraction.

Identification works on a short byte prefix so a CRD source can be
classified without downloading the whole body. Extraction handles tar
(plain, gzip, bzip2, xz), zip, and single compressed files.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import shutil
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from manifestgate.core.errors import FormatError

logger = logging.getLogger(__name__)

# Enough for a tar header (magic at 257) after a compressed header
SNIFF_SIZE = 4096

_TAR_MAGIC_OFFSET = 257
_TAR_MAGIC = b"ustar"

_COMPRESSION_MAGIC: tuple[tuple[str, bytes], ...] = (
    ("gzip", b"\x1f\x8b"),
    ("bzip2", b"BZh"),
    ("xz", b"\xfd7zXZ\x00"),
)

_ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")

_COMPRESSED_SUFFIXES = {"gzip": ".gz", "bzip2": ".bz2", "xz": ".xz"}


@dataclass(frozen=True)
class ArchiveFormat:
    """What a byte prefix looks like.

    ``container`` is None for a compressed stream whose payload could
    not be identified from the prefix (bzip2 never can, it only emits
    output per block) or that holds a single file.
    """

    compression: str | None = None
    container: str | None = None

    @property
    def name(self) -> str:
        parts = [p for p in (self.container, self.compression) if p]
        return ".".join(parts) or "unknown"


def read_prefix(stream: IO[bytes], size: int = SNIFF_SIZE) -> bytes:
    """Read up to ``size`` bytes, looping over short reads."""
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


def _is_tar(data: bytes) -> bool:
    end = _TAR_MAGIC_OFFSET + len(_TAR_MAGIC)
    return len(data) >= end and data[_TAR_MAGIC_OFFSET:end] == _TAR_MAGIC


def _peek_decompressed(compression: str, data: bytes) -> bytes:
    """Decompress as much of a prefix as possible.

    Raises:
        FormatError: If the header is recognized but the stream is corrupt.
    """
    try:
        if compression == "gzip":
            return zlib.decompressobj(wbits=16 + zlib.MAX_WBITS).decompress(data)
        if compression == "xz":
            return lzma.LZMADecompressor().decompress(data)
        if compression == "bzip2":
            return bz2.BZ2Decompressor().decompress(data)
    except (zlib.error, lzma.LZMAError, OSError, EOFError) as e:
        raise FormatError(f"corrupt {compression} stream: {e}") from e
    return b""


def identify(prefix: bytes) -> ArchiveFormat | None:
    """Identify an archive or compressed format from a byte prefix.

    Returns:
        The detected format, or None when no signature matches.

    Raises:
        FormatError: A compression signature matched but the data is unreadable.
    """
    if prefix.startswith(_ZIP_MAGIC):
        return ArchiveFormat(container="zip")
    if _is_tar(prefix):
        return ArchiveFormat(container="tar")

    for compression, magic in _COMPRESSION_MAGIC:
        if prefix.startswith(magic):
            inner = _peek_decompressed(compression, prefix)
            return ArchiveFormat(
                compression=compression,
                container="tar" if _is_tar(inner) else None,
            )

    return None


# ═══════════════════════════════════════════════════════════════════
#  Extraction
# ═══════════════════════════════════════════════════════════════════


def extract(archive: Path, dest: Path, name_hint: str = "") -> list[Path]:
    """Unpack every entry of ``archive`` into ``dest``.

    Args:
        archive: Local archive file.
        dest: Target directory (created if missing).
        name_hint: Original file name, used to name the output of a
            single compressed file (``crds.yaml.gz`` → ``crds.yaml``).

    Returns:
        Extracted regular files, sorted.

    Raises:
        FormatError: Unknown format, corrupt data, or an entry that
            would land outside ``dest``.
    """
    dest.mkdir(parents=True, exist_ok=True)
    with open(archive, "rb") as fh:
        fmt = identify(read_prefix(fh))
    if fmt is None:
        raise FormatError(f"{name_hint or archive.name}: not a recognized archive")

    logger.debug("Extracting %s (%s) into %s", archive, fmt.name, dest)
    try:
        if fmt.container == "zip":
            _extract_zip(archive, dest)
        elif fmt.container == "tar" or tarfile.is_tarfile(archive):
            with tarfile.open(archive, "r:*") as tf:
                tf.extractall(dest, filter="data")
        else:
            _extract_single(archive, dest, fmt.compression or "", name_hint or archive.name)
    except (
        tarfile.TarError, zipfile.BadZipFile, gzip.BadGzipFile,
        zlib.error, lzma.LZMAError, EOFError,
    ) as e:
        raise FormatError(f"cannot extract {name_hint or archive.name}: {e}") from e

    return sorted(p for p in dest.rglob("*") if p.is_file())


def _extract_zip(archive: Path, dest: Path) -> None:
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (root / member).resolve()
            if not target.is_relative_to(root):
                raise FormatError(f"zip entry escapes target directory: {member}")
        zf.extractall(root)


def _extract_single(archive: Path, dest: Path, compression: str, name: str) -> None:
    suffix = _COMPRESSED_SUFFIXES.get(compression, "")
    base = Path(name).name
    out_name = base[: -len(suffix)] if suffix and base.endswith(suffix) else f"{base}.out"

    opener = {"gzip": gzip.open, "bzip2": bz2.open, "xz": lzma.open}.get(compression)
    if opener is None:
        raise FormatError(f"{name}: unsupported compression '{compression}'")

    with opener(archive, "rb") as src, open(dest / out_name, "wb") as out:
        shutil.copyfileobj(src, out)
