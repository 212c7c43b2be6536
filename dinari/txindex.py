"""Persistent transaction location index and UTXO set."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from dinari.database import Batch, Database, DatabaseError
from dinari.serialize import DeserializationError, Deserializer, Serializer

TXID_SIZE = 32
HEIGHT_SIZE = 4
INDEX_SIZE = 4
COUNT_SIZE = 8

_PREFIX_TX_LOCATION = b"t"  # t<txid> -> location
_PREFIX_UTXO = b"u"         # u<outpoint> -> txout
_PREFIX_ADDR_UTXO = b"a"    # a<address><outpoint> -> txout
_PREFIX_UTXO_COUNT = b"c"   # c -> count


@dataclass(frozen=True)
class OutPoint:
    """Reference to one output of a transaction."""

    txid: bytes
    vout: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "txid", bytes(self.txid))
        if len(self.txid) != TXID_SIZE:
            raise ValueError(f"txid must be {TXID_SIZE} bytes, got {len(self.txid)}")
        if not 0 <= self.vout < 1 << 32:
            raise ValueError(f"output index out of range: {self.vout}")

    def key_bytes(self) -> bytes:
        return self.txid + self.vout.to_bytes(4, "little")


@dataclass(frozen=True)
class TxOut:
    """A transaction output: an amount and its locking script."""

    value: int
    script_pubkey: bytes = b""

    def serialize(self) -> bytes:
        out = Serializer()
        out.write_int64(self.value)
        out.write_compact_size(len(self.script_pubkey))
        out.write_bytes(self.script_pubkey)
        return out.getvalue()

    @classmethod
    def deserialize(cls, data: bytes) -> TxOut:
        reader = Deserializer(data)
        value = reader.read_int64()
        length = reader.read_compact_size()
        return cls(value, reader.read_bytes(length))


@dataclass(frozen=True)
class TxLocation:
    """Where a transaction sits in the chain."""

    height: int = 0
    tx_index: int = 0


@dataclass
class UTXOBatch:
    """UTXO additions and removals applied together for one block."""

    additions: list[tuple[OutPoint, TxOut]] = field(default_factory=list)
    removals: list[OutPoint] = field(default_factory=list)


def _check_txid(txid: bytes) -> bytes:
    raw = bytes(txid)
    if len(raw) != TXID_SIZE:
        raise ValueError(f"txid must be {TXID_SIZE} bytes, got {len(raw)}")
    return raw


def _location_key(txid: bytes) -> bytes:
    return _PREFIX_TX_LOCATION + _check_txid(txid)


def _utxo_key(outpoint: OutPoint) -> bytes:
    return _PREFIX_UTXO + outpoint.key_bytes()


def _address_utxo_key(address: bytes, outpoint: OutPoint) -> bytes:
    return _PREFIX_ADDR_UTXO + bytes(address) + outpoint.key_bytes()


class TxIndex:
    """Transaction index and UTXO set stored under ``<data_dir>/txindex``."""

    def __init__(self) -> None:
        self._db: Database | None = None

    def open(self, data_dir: str | Path) -> None:
        path = Path(data_dir) / "txindex"
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
            raise DatabaseError("TxIndex not open")
        return self._db

    def index_transaction(self, txid: bytes, height: int, tx_index: int) -> None:
        """Record that ``txid`` is transaction ``tx_index`` of block ``height``."""
        if not 0 <= height < 1 << (8 * HEIGHT_SIZE):
            raise ValueError(f"block height out of range: {height}")
        if not 0 <= tx_index < 1 << (8 * INDEX_SIZE):
            raise ValueError(f"transaction index out of range: {tx_index}")
        data = height.to_bytes(HEIGHT_SIZE, "little") + tx_index.to_bytes(INDEX_SIZE, "little")
        self._database().write(_location_key(txid), data)

    def tx_location(self, txid: bytes) -> TxLocation | None:
        raw = self._database().read(_location_key(txid))
        if raw is None or len(raw) != HEIGHT_SIZE + INDEX_SIZE:
            return None
        return TxLocation(
            int.from_bytes(raw[:HEIGHT_SIZE], "little"),
            int.from_bytes(raw[HEIGHT_SIZE:], "little"),
        )

    def add_utxo(self, outpoint: OutPoint, output: TxOut) -> None:
        db = self._database()
        data = output.serialize()
        batch = Batch()
        batch.put(_utxo_key(outpoint), data)
        batch.put(_address_utxo_key(output.script_pubkey, outpoint), data)
        db.write_batch(batch)
        self._update_utxo_count(1)

    def remove_utxo(self, outpoint: OutPoint) -> None:
        """Mark ``outpoint`` spent; raise KeyError if it is not in the set."""
        db = self._database()
        raw = db.read(_utxo_key(outpoint))
        if raw is None:
            raise KeyError(f"no unspent output {outpoint.txid.hex()}:{outpoint.vout}")
        output = TxOut.deserialize(raw)
        batch = Batch()
        batch.delete(_utxo_key(outpoint))
        batch.delete(_address_utxo_key(output.script_pubkey, outpoint))
        db.write_batch(batch)
        self._update_utxo_count(-1)

    def get_utxo(self, outpoint: OutPoint) -> TxOut | None:
        raw = self._database().read(_utxo_key(outpoint))
        if raw is None:
            return None
        try:
            return TxOut.deserialize(raw)
        except DeserializationError:
            return None

    def has_utxo(self, outpoint: OutPoint) -> bool:
        return self._database().exists(_utxo_key(outpoint))

    def utxos_for_address(self, address: bytes) -> list[tuple[OutPoint, TxOut]]:
        """Return every unspent output paying to ``address``, in key order."""
        address = bytes(address)
        prefix = _PREFIX_ADDR_UTXO + address
        entry_size = len(prefix) + TXID_SIZE + 4
        cursor = self._database().iterator()
        cursor.seek(prefix)
        found: list[tuple[OutPoint, TxOut]] = []
        while cursor.valid():
            key = cursor.key()
            if not key.startswith(prefix):
                break
            if len(key) >= entry_size:
                offset = len(prefix)
                txid = key[offset:offset + TXID_SIZE]
                vout = int.from_bytes(key[offset + TXID_SIZE:offset + TXID_SIZE + 4], "little")
                try:
                    found.append((OutPoint(txid, vout), TxOut.deserialize(cursor.value())))
                except DeserializationError:
                    pass
            cursor.next()
        return found

    def utxo_set_size(self) -> int:
        raw = self._database().read(_PREFIX_UTXO_COUNT)
        if raw is None or len(raw) != COUNT_SIZE:
            return 0
        return int.from_bytes(raw, "little")

    def _update_utxo_count(self, delta: int) -> None:
        count = max(self.utxo_set_size() + delta, 0)
        self._database().write(_PREFIX_UTXO_COUNT, count.to_bytes(COUNT_SIZE, "little"))

    def apply_utxo_batch(self, batch: UTXOBatch) -> None:
        """Apply a block's UTXO changes atomically and adjust the count."""
        db = self._database()
        ops = Batch()
        for outpoint, output in batch.additions:
            data = output.serialize()
            ops.put(_utxo_key(outpoint), data)
            ops.put(_address_utxo_key(output.script_pubkey, outpoint), data)
        for outpoint in batch.removals:
            raw = db.read(_utxo_key(outpoint))
            if raw is None:
                continue
            try:
                output = TxOut.deserialize(raw)
            except DeserializationError:
                continue
            ops.delete(_utxo_key(outpoint))
            ops.delete(_address_utxo_key(output.script_pubkey, outpoint))
        db.write_batch(ops)
        self._update_utxo_count(len(batch.additions) - len(batch.removals))

    def remove_transaction(self, txid: bytes) -> None:
        self._database().delete(_location_key(txid))

    def stats(self) -> str:
        if not self.is_open():
            return "TxIndex not open"
        return self._database().stats()

    def compact(self) -> None:
        if self.is_open():
            self._database().compact()

    def __enter__(self) -> TxIndex:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()