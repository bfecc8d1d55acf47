"""Compressed migration descriptors.

A descriptor is the gzip-compressed text of one migration file.  The file's
name and the time the descriptor was built live in the gzip header, so a
descriptor identifies itself without any surrounding metadata.  Descriptors
are embedded into application code by the generator and decompressed on
demand; migrations are read rarely, so the smaller footprint is worth the
decompression cost on each access.
"""

from __future__ import annotations

import gzip
import io
import logging
import struct
import time
import zlib
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Iterator, Union

from schemabrew.directives import DOWN, UP, find_package, read_region
from schemabrew.errors import CodecError, MalformedDescriptor, ScanError

logger = logging.getLogger(__name__)

Source = Union[str, bytes, bytearray, memoryview, IO[bytes], IO[str]]

_CHUNK_SIZE = 64 * 1024

# gzip header flags (RFC 1952)
_FHCRC = 0x02
_FEXTRA = 0x04
_FNAME = 0x08
_FCOMMENT = 0x10
_FRESERVED = 0xE0


# ---------------------------------------------------------------------------
# Literal rendering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiteralStyle:
    """Tokens used to render descriptor bytes as a source-code literal."""

    opening: str
    closing: str
    indent: str
    comment: str


BYTE_SLICE = LiteralStyle(opening="[]byte{", closing="}", indent="\t", comment="//")
PYTHON_BYTES = LiteralStyle(opening="bytes([", closing="])", indent="    ", comment="#")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iter_source(src: Source) -> Iterator[bytes]:
    if isinstance(src, str):
        yield src.encode("utf-8")
        return
    if isinstance(src, (bytes, bytearray, memoryview)):
        yield bytes(src)
        return
    while True:
        chunk = src.read(_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


def _read_header(data: bytes) -> tuple[str, datetime]:
    """Parse the gzip member header at the start of *data*."""
    if len(data) < 10 or data[:2] != b"\x1f\x8b":
        raise MalformedDescriptor("Descriptor is not a gzip envelope (bad magic number)")

    method, flags = data[2], data[3]
    if method != 8:
        raise MalformedDescriptor(f"Unsupported compression method: {method}")
    if flags & _FRESERVED:
        raise MalformedDescriptor(f"Reserved gzip header flags set: {flags:#04x}")

    (mtime,) = struct.unpack("<I", data[4:8])
    pos = 10

    if flags & _FEXTRA:
        if len(data) < pos + 2:
            raise MalformedDescriptor("Truncated gzip header (extra field)")
        (xlen,) = struct.unpack("<H", data[pos:pos + 2])
        pos += 2 + xlen

    name = ""
    if flags & _FNAME:
        end = data.find(b"\x00", pos)
        if end < 0:
            raise MalformedDescriptor("Truncated gzip header (name field)")
        name = data[pos:end].decode("latin-1")
        pos = end + 1

    if flags & _FCOMMENT:
        end = data.find(b"\x00", pos)
        if end < 0:
            raise MalformedDescriptor("Truncated gzip header (comment field)")
        pos = end + 1

    if flags & _FHCRC:
        pos += 2

    if pos > len(data):
        raise MalformedDescriptor("Truncated gzip header")

    return name, datetime.fromtimestamp(mtime, tz=timezone.utc)


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


class Descriptor(bytes):
    """The compressed bytes of one migration file.

    Build one from raw SQL with :meth:`create`, or wrap bytes that were
    generated earlier with ``Descriptor(raw)``.
    """

    @classmethod
    def create(cls, src: Source, name: str) -> Descriptor:
        """Compress *src* into a new descriptor identified by *name*.

        *src* may be text, bytes or a readable stream of either; it must not
        already be compressed.  *name* is stored as the gzip file name and is
        how generated descriptors are identified later, so it is required.

        Raises
        ------
        ValueError
            If *name* is empty or cannot be stored in a gzip header.
        CodecError
            If the source cannot be read or the compressor fails.
        """
        if not name:
            raise ValueError("Descriptor name is required")
        try:
            name.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError(f"Descriptor name must be latin-1 encodable: {name!r}") from exc

        buf = io.BytesIO()
        try:
            with gzip.GzipFile(
                filename=name, mode="wb", fileobj=buf,
                compresslevel=9, mtime=int(time.time()),
            ) as zw:
                for chunk in _iter_source(src):
                    zw.write(chunk)
        except (OSError, ValueError, zlib.error) as exc:
            raise CodecError(f"Could not compress descriptor {name!r}: {exc}") from exc

        descriptor = cls(buf.getvalue())
        logger.debug("Compressed descriptor %s (%d bytes)", name, len(descriptor))
        return descriptor

    def __repr__(self) -> str:
        return f"Descriptor(<{len(self)} bytes>)"

    def info(self) -> tuple[str, datetime]:
        """Return the name and UTC modification time from the gzip header."""
        return _read_header(self)

    def package(self) -> str:
        """Return the name from the first ``-- package:`` directive, or ``""``."""
        with closing(self._lines()) as lines:
            return find_package(lines)

    def up(self) -> str:
        """Return every line inside ``-- migrate: up`` regions."""
        with closing(self._lines()) as lines:
            return read_region(lines, UP)

    def down(self) -> str:
        """Return every line inside ``-- migrate: down`` regions."""
        with closing(self._lines()) as lines:
            return read_region(lines, DOWN)

    def literal(self, style: LiteralStyle = BYTE_SLICE) -> str:
        """Render the bytes as a source literal, 16 bytes per row."""
        parts = [
            style.opening, "\n", style.indent,
            f"{style.comment} {len(self)} bytes of compressed descriptor data",
        ]
        for i in range(0, len(self), 16):
            parts.append("\n" + style.indent)
            # no trailing space after the last byte of a row
            parts.append(" ".join(f"0x{b:02x}," for b in self[i:i + 16]))
        parts.append("\n" + style.closing)
        return "".join(parts)

    def _lines(self) -> Iterator[str]:
        """Yield decompressed payload lines without their line terminators.

        Lines are split on ``\\n`` only; one trailing ``\\r`` is removed.
        """
        _read_header(self)
        try:
            with gzip.GzipFile(fileobj=io.BytesIO(self), mode="rb") as zr:
                for raw in zr:
                    if raw.endswith(b"\n"):
                        raw = raw[:-1]
                    if raw.endswith(b"\r"):
                        raw = raw[:-1]
                    yield raw.decode("utf-8")
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as exc:
            raise ScanError(f"Could not read descriptor payload: {exc}") from exc
