import pytest

from dinari.database import DatabaseError
from dinari.serialize import DeserializationError
from dinari.txindex import OutPoint, TxIndex, TxLocation, TxOut, UTXOBatch

TXID_A = bytes([1]) * 32
TXID_B = bytes([2]) * 32
SCRIPT_X = b"\x76\xa9script-x"
SCRIPT_Y = b"\x76\xa9script-y"


@pytest.fixture
def index(tmp_path):
    idx = TxIndex()
    idx.open(tmp_path)
    yield idx
    idx.close()


def test_open_creates_directory(tmp_path):
    idx = TxIndex()
    idx.open(tmp_path)
    assert idx.is_open()
    assert (tmp_path / "txindex").is_dir()
    idx.close()
    assert not idx.is_open()


def test_txout_round_trip():
    out = TxOut(5_000_000_000, SCRIPT_X)
    assert TxOut.deserialize(out.serialize()) == out


def test_txout_truncated():
    data = TxOut(7, SCRIPT_X).serialize()
    with pytest.raises(DeserializationError):
        TxOut.deserialize(data[:-1])


def test_outpoint_validation():
    with pytest.raises(ValueError):
        OutPoint(b"short", 0)
    with pytest.raises(ValueError):
        OutPoint(TXID_A, -1)


def test_tx_location_round_trip(index):
    index.index_transaction(TXID_A, 1000, 3)
    assert index.tx_location(TXID_A) == TxLocation(1000, 3)
    assert index.tx_location(TXID_B) is None


def test_remove_transaction(index):
    index.index_transaction(TXID_A, 1, 0)
    index.remove_transaction(TXID_A)
    assert index.tx_location(TXID_A) is None


def test_add_get_remove_utxo(index):
    op = OutPoint(TXID_A, 0)
    out = TxOut(50, SCRIPT_X)
    index.add_utxo(op, out)
    assert index.has_utxo(op)
    assert index.get_utxo(op) == out
    assert index.utxo_set_size() == 1
    index.remove_utxo(op)
    assert not index.has_utxo(op)
    assert index.get_utxo(op) is None
    assert index.utxo_set_size() == 0
    assert index.utxos_for_address(SCRIPT_X) == []


def test_remove_missing_utxo(index):
    with pytest.raises(KeyError):
        index.remove_utxo(OutPoint(TXID_A, 9))


def test_utxos_for_address(index):
    index.add_utxo(OutPoint(TXID_A, 0), TxOut(10, SCRIPT_X))
    index.add_utxo(OutPoint(TXID_B, 1), TxOut(20, SCRIPT_X))
    index.add_utxo(OutPoint(TXID_A, 1), TxOut(30, SCRIPT_Y))
    mine = index.utxos_for_address(SCRIPT_X)
    assert dict(mine) == {
        OutPoint(TXID_A, 0): TxOut(10, SCRIPT_X),
        OutPoint(TXID_B, 1): TxOut(20, SCRIPT_X),
    }
    assert index.utxos_for_address(SCRIPT_Y) == [(OutPoint(TXID_A, 1), TxOut(30, SCRIPT_Y))]
    assert index.utxo_set_size() == 3


def test_apply_utxo_batch(index):
    spent = OutPoint(TXID_A, 0)
    index.add_utxo(spent, TxOut(10, SCRIPT_X))
    batch = UTXOBatch(
        additions=[(OutPoint(TXID_B, 0), TxOut(4, SCRIPT_Y)), (OutPoint(TXID_B, 1), TxOut(5, SCRIPT_Y))],
        removals=[spent],
    )
    index.apply_utxo_batch(batch)
    assert not index.has_utxo(spent)
    assert index.get_utxo(OutPoint(TXID_B, 1)) == TxOut(5, SCRIPT_Y)
    assert index.utxo_set_size() == 2
    assert index.utxos_for_address(SCRIPT_X) == []


def test_count_never_negative(index):
    index.apply_utxo_batch(UTXOBatch(removals=[OutPoint(TXID_A, 0), OutPoint(TXID_B, 0)]))
    assert index.utxo_set_size() == 0


def test_persists_across_reopen(tmp_path):
    idx = TxIndex()
    idx.open(tmp_path)
    idx.add_utxo(OutPoint(TXID_A, 2), TxOut(77, SCRIPT_X))
    idx.close()
    again = TxIndex()
    again.open(tmp_path)
    assert again.get_utxo(OutPoint(TXID_A, 2)) == TxOut(77, SCRIPT_X)
    assert again.utxo_set_size() == 1
    again.close()


def test_closed_index():
    idx = TxIndex()
    assert idx.stats() == "TxIndex not open"
    with pytest.raises(DatabaseError):
        idx.has_utxo(OutPoint(TXID_A, 0))


def test_index_transaction_range(index):
    with pytest.raises(ValueError):
        index.index_transaction(TXID_A, -1, 0)
    with pytest.raises(ValueError):
        index.index_transaction(b"bad", 0, 0)


def test_stats_and_compact(index):
    index.add_utxo(OutPoint(TXID_A, 0), TxOut(1, SCRIPT_X))
    index.compact()
    assert index.has_utxo(OutPoint(TXID_A, 0))
    assert "entries" in index.stats()