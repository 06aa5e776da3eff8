"""A persistent store backed by an ordered key-value table on disk."""

from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Mapping, Optional

from chainstore.changelog import Changelog
from chainstore.config import Config, Opt, build_config
from chainstore.encoding import (
    decode_block,
    decode_changelist,
    decode_collection,
    decode_event,
    decode_transaction,
    decode_transaction_result,
    decode_uint64,
    encode_block,
    encode_changelist,
    encode_collection,
    encode_event,
    encode_transaction,
    encode_transaction_result,
    encode_uint64,
)
from chainstore.errors import NotFoundError
from chainstore.keys import (
    LEDGER_CHANGELOG_KEY_PREFIX,
    block_id_index_key,
    block_key,
    collection_key,
    event_key,
    event_key_block_prefix,
    event_key_has_type,
    latest_block_key,
    ledger_changelog_key,
    ledger_value_key,
    register_id_from_ledger_changelog_key,
    transaction_key,
    transaction_result_key,
)
from chainstore.model import (
    Block,
    Delta,
    Event,
    Identifier,
    LightCollection,
    RegisterID,
    RegisterValue,
    TransactionBody,
    View,
)
from chainstore.results import StorableTransactionResult
from chainstore.store import Store

DB_FILE_NAME = "chain.db"


class _Txn:
    """Key-value operations bound to the store's connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: bytes) -> bytes:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise NotFoundError()
        return bytes(row[0])

    def set(self, key: bytes, value: bytes) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, bytes(value))
        )

    def scan(self, prefix: bytes, start: Optional[bytes] = None) -> Iterator[tuple[bytes, bytes]]:
        """Yield the entries whose key has the prefix, in byte order, from ``start``."""
        rows = self._conn.execute(
            "SELECT key, value FROM kv WHERE key >= ? ORDER BY key",
            (start if start is not None else prefix,),
        ).fetchall()
        for key, value in rows:
            key = bytes(key)
            if not key.startswith(prefix):
                break
            yield key, bytes(value)

    def latest_block_height(self) -> int:
        return decode_uint64(self.get(latest_block_key()))


class DiskStore(Store):
    """Embedded persistent store of chain state.

    Keys are laid out so that byte-wise ordering matches numeric ordering of
    heights and indices. An in-memory changelog of register updates is
    rebuilt from disk on open.
    """

    def __init__(self, *opts: Opt) -> None:
        self.config: Config = build_config(*opts)
        self.path = self.config.db_path
        os.makedirs(self.path, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(
            os.path.join(self.path, DB_FILE_NAME),
            isolation_level=None,
            check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
            " WITHOUT ROWID"
        )
        self._ledger_changelog = Changelog()
        self._setup()

    def __enter__(self) -> "DiskStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _view(self) -> Iterator[_Txn]:
        with self._lock:
            yield _Txn(self._conn)

    @contextmanager
    def _update(self) -> Iterator[_Txn]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield _Txn(self._conn)
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    def _setup(self) -> None:
        """Load the changelist of every register from disk."""
        with self._view() as txn:
            for key, value in txn.scan(LEDGER_CHANGELOG_KEY_PREFIX.encode()):
                try:
                    register_id = register_id_from_ledger_changelog_key(key)
                except ValueError as exc:
                    raise ValueError("found changelist for invalid register ID") from exc
                self._ledger_changelog.set_changelist(register_id, decode_changelist(value))

    def latest_block(self) -> Block:
        with self._view() as txn:
            height = txn.latest_block_height()
            return decode_block(txn.get(block_key(height)))

    def block_by_id(self, block_id: Identifier) -> Block:
        with self._view() as txn:
            height = decode_uint64(txn.get(block_id_index_key(block_id)))
            return decode_block(txn.get(block_key(height)))

    def block_by_height(self, block_height: int) -> Block:
        with self._view() as txn:
            return decode_block(txn.get(block_key(block_height)))

    def store_block(self, block: Block) -> None:
        with self._update() as txn:
            self._store_block(txn, block)

    @staticmethod
    def _store_block(txn: _Txn, block: Block) -> None:
        enc_block = encode_block(block)
        enc_height = encode_uint64(block.header.height)
        try:
            latest_height = txn.latest_block_height()
        except NotFoundError:
            latest_height = 0
        txn.set(block_key(block.header.height), enc_block)
        txn.set(block_id_index_key(block.id()), enc_height)
        if block.header.height >= latest_height:
            txn.set(latest_block_key(), enc_height)

    def commit_block(
        self,
        block: Block,
        collections: Iterable[LightCollection],
        transactions: Mapping[Identifier, TransactionBody],
        transaction_results: Mapping[Identifier, StorableTransactionResult],
        delta: Delta,
        events: Iterable[Event] | None,
    ) -> None:
        if len(transactions) != len(transaction_results):
            raise ValueError(
                f"transactions count ({len(transactions)}) does not match "
                f"result count ({len(transaction_results)})"
            )
        with self._update() as txn:
            self._store_block(txn, block)
            for collection in collections:
                self._insert_collection(txn, collection)
            for tx_id, tx in transactions.items():
                self._insert_transaction(txn, tx_id, tx)
                self._insert_transaction_result(txn, tx_id, transaction_results[tx_id])
            self._insert_ledger_delta(txn, block.header.height, delta)
            if events is not None:
                self._insert_events(txn, block.header.height, events)

    def collection_by_id(self, collection_id: Identifier) -> LightCollection:
        with self._view() as txn:
            return decode_collection(txn.get(collection_key(collection_id)))

    def insert_collection(self, collection: LightCollection) -> None:
        with self._update() as txn:
            self._insert_collection(txn, collection)

    @staticmethod
    def _insert_collection(txn: _Txn, collection: LightCollection) -> None:
        txn.set(collection_key(collection.id()), encode_collection(collection))

    def transaction_by_id(self, tx_id: Identifier) -> TransactionBody:
        with self._view() as txn:
            return decode_transaction(txn.get(transaction_key(tx_id)))

    def insert_transaction(self, tx: TransactionBody) -> None:
        with self._update() as txn:
            self._insert_transaction(txn, tx.id(), tx)

    @staticmethod
    def _insert_transaction(txn: _Txn, tx_id: Identifier, tx: TransactionBody) -> None:
        txn.set(transaction_key(tx_id), encode_transaction(tx))

    def transaction_result_by_id(self, tx_id: Identifier) -> StorableTransactionResult:
        with self._view() as txn:
            return decode_transaction_result(txn.get(transaction_result_key(tx_id)))

    def insert_transaction_result(
        self, tx_id: Identifier, result: StorableTransactionResult
    ) -> None:
        with self._update() as txn:
            self._insert_transaction_result(txn, tx_id, result)

    @staticmethod
    def _insert_transaction_result(
        txn: _Txn, tx_id: Identifier, result: StorableTransactionResult
    ) -> None:
        txn.set(transaction_result_key(tx_id), encode_transaction_result(result))

    def ledger_view_by_height(self, block_height: int) -> View:
        def read(owner: str, controller: str, key: str) -> RegisterValue:
            register_id = RegisterID(owner, controller, key)
            with self._ledger_changelog.lock:
                last_changed = self._ledger_changelog.most_recent_change(
                    register_id, block_height
                )
                try:
                    with self._view() as txn:
                        return txn.get(ledger_value_key(register_id, last_changed))
                except NotFoundError:
                    return None

        return View(read)

    def insert_ledger_delta(self, block_height: int, delta: Delta) -> None:
        with self._update() as txn:
            self._insert_ledger_delta(txn, block_height, delta)

    def _insert_ledger_delta(self, txn: _Txn, block_height: int, delta: Delta) -> None:
        with self._ledger_changelog.lock:
            for register_id, value in delta.register_updates():
                # A value of None is a deletion: record the change, write no value.
                if value is not None:
                    txn.set(ledger_value_key(register_id, block_height), value)
                self._ledger_changelog.add_change(register_id, block_height)
                txn.set(
                    ledger_changelog_key(register_id),
                    encode_changelist(self._ledger_changelog.changelist(register_id)),
                )

    def events_by_height(self, block_height: int, event_type: str) -> list[Event]:
        prefix = event_key_block_prefix(block_height)
        start = event_key(block_height, 0, 0, "")
        type_bytes = event_type.encode()
        with self._view() as txn:
            return [
                decode_event(value)
                for key, value in txn.scan(prefix, start)
                if not event_type or event_key_has_type(key, type_bytes)
            ]

    def insert_events(self, block_height: int, events: Iterable[Event] | None) -> None:
        with self._update() as txn:
            self._insert_events(txn, block_height, events or ())

    @staticmethod
    def _insert_events(txn: _Txn, block_height: int, events: Iterable[Event]) -> None:
        for event in events:
            key = event_key(block_height, event.transaction_index, event.event_index, event.type)
            txn.set(key, encode_event(event))

    def sync(self) -> None:
        """Flush the write-ahead log into the database file."""
        with self._lock:
            self._conn.execute("PRAGMA wal_checkpoint(FULL)")

    def close(self) -> None:
        """Persist all writes and close the database."""
        with self._lock:
            self.sync()
            self._conn.close()