"""Persistent block storage indexed by height and by block hash."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Callable

from dinari.database import Batch, Database, DatabaseError

HEIGHT_SIZE = 4
HASH_SIZE = 32
WORK_SIZE = 32

_PREFIX_BLOCK = b"b"   # b<height, big-endian> -> block bytes
_PREFIX_HASH = b"h"    # h<hash> -> height, little-endian
_PREFIX_BEST = b"B"    # B -> best block hash
_PREFIX_HEIGHT = b"H"  # H -> chain height
_PREFIX_WORK = b"W"    # W -> total chain work

BlockHasher = Callable[[bytes], bytes]


def double_sha256(data: bytes) -> bytes:
    """Return SHA-256 applied twice to ``data``."""
    return hashlib.sha256(hashlib.sha256(bytes(data)).digest()).digest()


def _check_height(height: int) -> int:
    if not 0 <= height < 1 << (8 * HEIGHT_SIZE):
        raise ValueError(f"block height out of range: {height}")
    return height


def _encode_height_le(height: int) -> bytes:
    return _check_height(height).to_bytes(HEIGHT_SIZE, "little")


def _decode_height_le(raw: bytes | None) -> int | None:
    if raw is None or len(raw) != HEIGHT_SIZE:
        return None
    return int.from_bytes(raw, "little")


def _check_hash(block_hash: bytes) -> bytes:
    raw = bytes(block_hash)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"block hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def _block_key(height: int) -> bytes:
    # Big-endian so that keys sort in height order.
    return _PREFIX_BLOCK + _check_height(height).to_bytes(HEIGHT_SIZE, "big")


def _hash_key(block_hash: bytes) -> bytes:
    return _PREFIX_HASH + _check_hash(block_hash)


class BlockStore:
    """Stores serialized blocks under ``<data_dir>/blocks``.

    Blocks are kept as their serialized bytes; ``block_hash`` maps those
    bytes to the 32-byte block hash used for the hash index.
    """

    def __init__(self, block_hash: BlockHasher = double_sha256) -> None:
        self._block_hash = block_hash
        self._db: Database | None = None

    def open(self, data_dir: str | Path) -> None:
        """Open (creating if needed) the store inside ``data_dir``."""
        path = Path(data_dir) / "blocks"
        path.mkdir(parents=True, exist_ok=True)
        db = Database()
        db.open(path, True)
        self.close()
        self._db = db

    def close(self) -> None:
        if self._db is not None:
            self._db.close()

    def is_open(self) -> bool:
        return self._db is not None and self._db.is_open()

    def _database(self) -> Database:
        if self._db is None or not self._db.is_open():
            raise DatabaseError("BlockStore not open")
        return self._db

    def write_block(self, block: bytes, height: int) -> None:
        """Store ``block`` at ``height`` and index it by hash, atomically."""
        db = self._database()
        data = bytes(block)
        batch = Batch()
        batch.put(_block_key(height), data)
        batch.put(_hash_key(self._block_hash(data)), _encode_height_le(height))
        db.write_batch(batch)

    def read_block(self, height: int) -> bytes | None:
        return self._database().read(_block_key(height))

    def block_height(self, block_hash: bytes) -> int | None:
        return _decode_height_le(self._database().read(_hash_key(block_hash)))

    def read_block_by_hash(self, block_hash: bytes) -> bytes | None:
        height = self.block_height(block_hash)
        if height is None:
            return None
        return self.read_block(height)

    def has_block(self, block_hash: bytes) -> bool:
        return self._database().exists(_hash_key(block_hash))

    def best_block_hash(self) -> bytes | None:
        raw = self._database().read(_PREFIX_BEST)
        if raw is None or len(raw) != HASH_SIZE:
            return None
        return raw

    def set_best_block_hash(self, block_hash: bytes) -> None:
        self._database().write(_PREFIX_BEST, _check_hash(block_hash))

    def chain_height(self) -> int | None:
        return _decode_height_le(self._database().read(_PREFIX_HEIGHT))

    def set_chain_height(self, height: int) -> None:
        self._database().write(_PREFIX_HEIGHT, _encode_height_le(height))

    def total_work(self) -> int | None:
        raw = self._database().read(_PREFIX_WORK)
        if raw is None or len(raw) != WORK_SIZE:
            return None
        return int.from_bytes(raw, "little")

    def set_total_work(self, work: int) -> None:
        if not 0 <= work < 1 << (8 * WORK_SIZE):
            raise ValueError("total work must fit in 256 bits")
        self._database().write(_PREFIX_WORK, work.to_bytes(WORK_SIZE, "little"))

    def delete_block(self, height: int) -> None:
        """Remove the block at ``height`` and its hash index entry.

        Raises KeyError if no block is stored at that height.
        """
        db = self._database()
        block = self.read_block(height)
        if block is None:
            raise KeyError(f"no block at height {height}")
        batch = Batch()
        batch.delete(_block_key(height))
        batch.delete(_hash_key(self._block_hash(block)))
        db.write_batch(batch)

    def stats(self) -> str:
        if not self.is_open():
            return "BlockStore not open"
        return self._database().stats()

    def compact(self) -> None:
        if self.is_open():
            self._database().compact()

    def __enter__(self) -> BlockStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()