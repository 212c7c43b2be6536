# dinari

Core pieces of a cryptocurrency node, in plain Python with no third-party
dependencies (Python 3.10 or later).

## Modules

- `dinari.serialize`: `Serializer` and `Deserializer` for little-endian
  integers, booleans, Bitcoin-style VarInts (`write_varint`, `read_varint`,
  `write_compact_size`, `read_compact_size`), length-prefixed strings, raw
  bytes and 32/20-byte hashes. Reading past the end raises
  `DeserializationError`.
- `dinari.security`: `base64_encode`, a lenient `base64_decode` that stops at
  padding or the first invalid character, `constant_time_compare`,
  `secure_random_bytes`, and `RateLimiter`, a sliding-window limiter per key
  with `check_limit`, `ban`, `is_banned` and `cleanup_old_entries`. A key
  that reaches twice its limit inside the window is banned for an hour. The
  clock is injectable.
- `dinari.timeutil`: `current_time`, `current_time_millis`,
  `current_time_micros`, `monotonic_micros`, `format_timestamp` (local
  time), `format_iso8601` (UTC), `parse_iso8601` (returns 0 when the text does
  not parse), `is_in_future`, `is_in_past`, `difference`, `sleep_millis`, and
  a `Timer` that starts on creation and reports microseconds.
- `dinari.logger`: `LogLevel`, a thread-safe `Logger` writing
  `[timestamp] [LEVEL] [category] message` lines to stdout (stderr for
  `ERROR` and `FATAL`) and to an optional append-mode file set with
  `initialize`, plus `get_logger()` for the process-wide instance and
  `level_name`.
- `dinari.database`: `Database`, an ordered byte key-value store kept in a
  directory (an SQLite file `data.sqlite3`), with `read`, `write`, `delete`,
  `exists`, atomic `Batch` writes via `write_batch`, and `iterator()`, which
  returns a `DatabaseIterator` over a snapshot in ascending key order. Using a
  closed store raises `DatabaseError`.
- `dinari.blockstore`: `BlockStore`, kept under `<data_dir>/blocks`. It stores
  serialized blocks by height and indexes them by hash (double SHA-256 of the
  block bytes by default, see `double_sha256`), and records the best block
  hash, chain height and total work. `delete_block` raises `KeyError` for an
  empty height.
- `dinari.txindex`: `TxIndex`, kept under `<data_dir>/txindex`. It holds
  transaction locations (`TxLocation`) and a UTXO set of `OutPoint` to
  `TxOut`, with per-address lookup (`utxos_for_address`), an entry count
  (`utxo_set_size`) and atomic block updates through `UTXOBatch` and
  `apply_utxo_batch`. `remove_utxo` raises `KeyError` for an unknown output.
- `dinari.jsonvalue`: `JSONType`, `JSONValue` for null, boolean, number and
  string scalars, and `JSONObject`, which serializes its members in sorted key
  order.
- `dinari.rpcserver`: `RPCServer`, with a command registry
  (`register_command`, `commands`, `execute_command`), `handle_http_request`
  for a raw HTTP request string, and HTTP Basic `authenticate` with rate
  limiting, bans and a delay after failed attempts (`auth_failure_delay`,
  2 seconds by default). Also `RPCRequest`, `RPCResponse`, `RPCCommand`,
  `RPCServerConfig`, `RPCErrorCode`, `RPCError`, and the parameter helpers
  `check_params`, `check_params_at_least`, `check_params_range`,
  `get_string_param`, `get_int_param`, `get_bool_param` and
  `get_double_param`, which raise `RPCError`.

## Install

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Examples

Serialization:

```python
from dinari.serialize import Serializer, Deserializer

out = Serializer()
out.write_varint(300)
out.write_string("hello")

reader = Deserializer(out.getvalue())
assert reader.read_varint() == 300
assert reader.read_string(reader.read_compact_size()) == "hello"
```

Storing a block:

```python
from dinari.blockstore import BlockStore, double_sha256

store = BlockStore()
store.open("node-data")
block = b"serialized block bytes"
store.write_block(block, 0)
assert store.read_block_by_hash(double_sha256(block)) == block
store.close()
```

Registering and running an RPC command:

```python
from dinari.jsonvalue import JSONValue
from dinari.rpcserver import (
    RPCCommand, RPCRequest, RPCServer, RPCServerConfig, check_params,
)

def get_block_count(request, chain, wallet, node):
    check_params(request, 0)
    return JSONValue(0)

password = "password"
server = RPCServer(chain=None, wallet=None, node=None)
server.initialize(RPCServerConfig(rpc_password=password))
server.register_command(RPCCommand(
    "getblockcount", get_block_count, "blockchain",
    "Returns the height of the best chain", "getblockcount",
))

request = RPCRequest.parse('{"method": "getblockcount", "id": 1}')
print(server.execute_command(request).serialize())
# {"error":null,"id":1,"jsonrpc":"2.0","result":0}
```

A handler that raises has its message returned as an `INTERNAL_ERROR`
response. An unknown method gives `METHOD_NOT_FOUND`. A command with
`requires_wallet=True` gives `WALLET_ERROR` when the server has no wallet.

## What this package does not do

- It does not listen on a network socket. `RPCServer.start` runs a background
  thread that only waits to be stopped. To serve clients you pass each raw
  HTTP request to `handle_http_request` yourself and send back the string it
  returns.
- `RPCRequest.parse` reads only `method` and `id`. Request `params` are not
  parsed from the body.
- No blockchain, wallet or network commands are registered. The registry
  starts empty.
- There is no block, transaction, wallet or consensus model. `BlockStore`
  keeps blocks as opaque bytes, and `TxIndex` takes transaction ids as bytes.
- There is no command-line program.