"""
Content Store — Content-Addressed Blob Storage

Each blob lives at ``<root>/<aa>/<62 hex chars>`` where ``aa`` is the first
byte of the SHA-256 digest and the file name is the remaining 31 bytes, so
the reference ``aa/<62 hex>`` spells the full 64-character digest.

Identical content always maps to the same reference and is written once.
Blobs are written to a sibling temp file and renamed into place, so a file
under a blob name always holds complete content and is trusted as such.

The table file sits in the same root.  Only regular files one level down,
in a two-hex-digit shard directory and with a 62-hex-digit name, count as
blobs; the table and any other file never qualify.
"""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import re
from pathlib import Path
from typing import List, Union

from projavu.errors import DeleteContent, DeleteDirectory, ReadContent, StashContent

logger = logging.getLogger(__name__)

SHARD_NAME_LENGTH = 2
BLOB_NAME_LENGTH = 62

_SHARD_RE = re.compile(r"[0-9a-f]{%d}" % SHARD_NAME_LENGTH)
_BLOB_RE = re.compile(r"[0-9a-f]{%d}" % BLOB_NAME_LENGTH)
class ContentStore:
    """Deduplicated blob storage under a root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    @staticmethod
    def reference_for(data: bytes) -> str:
        """Reference (``shard/name``) derived from the SHA-256 of data."""
        digest = hashlib.sha256(data).digest()
        return f"{digest[:1].hex()}/{digest[1:].hex()}"

    def path_for(self, reference: str) -> Path:
        """Absolute on-disk path of a reference."""
        return self.root.joinpath(*reference.split("/"))

    def exists(self, reference: str) -> bool:
        """True if a blob is stored under reference."""
        return self.path_for(reference).is_file()

    # -- Write -------------------------------------------------------------

    def store(self, data: bytes) -> str:
        """Store data (once) and return its reference."""
        reference = self.reference_for(data)
        path = self.path_for(reference)
        try:
            path.parent.mkdir(exist_ok=True)
        except OSError as exc:
            raise StashContent(f"Cannot create shard {path.parent}: {exc}") from exc

        if path.exists():
            logger.debug("Blob %s already stored, skipping write", reference)
            return reference

        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            if tmp.exists():
                tmp.unlink()
            raise StashContent(f"Cannot write blob {reference}: {exc}") from exc
        logger.debug("Stored blob %s (%d bytes)", reference, len(data))
        return reference

    # -- Read --------------------------------------------------------------

    def read(self, reference: str) -> bytes:
        """Return the bytes stored under reference."""
        try:
            return self.path_for(reference).read_bytes()
        except OSError as exc:
            raise ReadContent(f"Cannot read blob {reference}: {exc}") from exc

    @staticmethod
    def is_reference(reference: str) -> bool:
        """True if reference has the ``<2 hex>/<62 hex>`` blob shape."""
        shard, sep, name = reference.partition("/")
        return bool(sep and _SHARD_RE.fullmatch(shard) and _BLOB_RE.fullmatch(name))

    def list_all_references(self) -> List[str]:
        """References of every blob on disk, sorted.

        Only shard directories directly under the root are scanned.
        """
        references = []
        try:
            with os.scandir(self.root) as shards:
                shard_names = [
                    s.name for s in shards
                    if s.is_dir(follow_symlinks=False) and _SHARD_RE.fullmatch(s.name)
                ]
            for shard in shard_names:
                with os.scandir(self.root / shard) as entries:
                    for entry in entries:
                        if (entry.is_file(follow_symlinks=False)
                                and _BLOB_RE.fullmatch(entry.name)):
                            references.append(f"{shard}/{entry.name}")
        except OSError as exc:
            raise ReadContent(f"Cannot scan content root {self.root}: {exc}") from exc
        return sorted(references)

    # -- Delete ------------------------------------------------------------

    def delete(self, reference: str) -> None:
        """Delete a blob, then its shard directory if it became empty."""
        if not self.is_reference(reference):
            raise DeleteContent(f"Not a blob reference: {reference!r}")
        path = self.path_for(reference)
        try:
            path.unlink()
        except OSError as exc:
            raise DeleteContent(f"Cannot delete blob {reference}: {exc}") from exc

        try:
            path.parent.rmdir()
        except OSError as exc:
            if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
                return  # shard still holds other blobs
            raise DeleteDirectory(
                f"Cannot remove shard {path.parent}: {exc}"
            ) from exc
        logger.debug("Removed empty shard %s", path.parent.name)
