"""Binary serialization, security and time helpers, logging, key-value block and transaction storage, and JSON-RPC request handling for a blockchain node."""

__version__ = "1.0.0"