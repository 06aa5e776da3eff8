"""An in-memory implementation of the store."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from chainstore.errors import NotFoundError
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


@dataclass
class MapLedger:
    """A ledger of register values held in a dictionary.

    Reads and writes both record the register as touched.
    """

    registers: dict[RegisterID, RegisterValue] = field(default_factory=dict)
    register_touches: set[RegisterID] = field(default_factory=set)

    def get(self, owner: str, controller: str, key: str) -> RegisterValue:
        register_id = RegisterID(owner, controller, key)
        self.register_touches.add(register_id)
        return self.registers.get(register_id)

    def set(self, owner: str, controller: str, key: str, value: RegisterValue) -> None:
        register_id = RegisterID(owner, controller, key)
        self.register_touches.add(register_id)
        self.registers[register_id] = value


class MemStore(Store):
    """Store that keeps all chain state in memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._block_id_to_height: dict[Identifier, int] = {}
        self._blocks: dict[int, Block] = {}
        self._collections: dict[Identifier, LightCollection] = {}
        self._transactions: dict[Identifier, TransactionBody] = {}
        self._transaction_results: dict[Identifier, StorableTransactionResult] = {}
        self._ledger: dict[int, MapLedger] = {}
        self._events_by_block_height: dict[int, list[Event]] = {}
        self._block_height = 0

    def block_by_id(self, block_id: Identifier) -> Block:
        with self._lock:
            height = self._block_id_to_height.get(block_id)
            if height is None or height not in self._blocks:
                raise NotFoundError()
            return self._blocks[height]

    def block_by_height(self, block_height: int) -> Block:
        with self._lock:
            try:
                return self._blocks[block_height]
            except KeyError:
                raise NotFoundError() from None

    def latest_block(self) -> Block:
        with self._lock:
            try:
                return self._blocks[self._block_height]
            except KeyError:
                raise NotFoundError() from None

    def store_block(self, block: Block) -> None:
        with self._lock:
            self._store_block(block)

    def _store_block(self, block: Block) -> None:
        height = block.header.height
        self._blocks[height] = block
        self._block_id_to_height[block.id()] = height
        if height > self._block_height:
            self._block_height = height

    def commit_block(
        self,
        block: Block,
        collections: Iterable[LightCollection],
        transactions: Mapping[Identifier, TransactionBody],
        transaction_results: Mapping[Identifier, StorableTransactionResult],
        delta: Delta,
        events: Iterable[Event] | None,
    ) -> None:
        with self._lock:
            if len(transactions) != len(transaction_results):
                raise ValueError(
                    f"transactions count ({len(transactions)}) does not match "
                    f"result count ({len(transaction_results)})"
                )
            self._store_block(block)
            for collection in collections:
                self._collections[collection.id()] = collection
            for tx in transactions.values():
                self._transactions[tx.id()] = tx
            self._transaction_results.update(transaction_results)
            self._insert_ledger_delta(block.header.height, delta)
            self._insert_events(block.header.height, events)

    def collection_by_id(self, collection_id: Identifier) -> LightCollection:
        with self._lock:
            try:
                return self._collections[collection_id]
            except KeyError:
                raise NotFoundError() from None

    def transaction_by_id(self, tx_id: Identifier) -> TransactionBody:
        with self._lock:
            try:
                return self._transactions[tx_id]
            except KeyError:
                raise NotFoundError() from None

    def transaction_result_by_id(self, tx_id: Identifier) -> StorableTransactionResult:
        with self._lock:
            try:
                return self._transaction_results[tx_id]
            except KeyError:
                raise NotFoundError() from None

    def ledger_view_by_height(self, block_height: int) -> View:
        def read(owner: str, controller: str, key: str) -> RegisterValue:
            # Reading a ledger records a touch, so it needs exclusive access.
            with self._lock:
                ledger = self._ledger.get(block_height)
                if ledger is None:
                    return None
                return ledger.get(owner, controller, key)

        return View(read)

    def unsafe_insert_ledger_delta(self, block_height: int, delta: Delta) -> None:
        """Write a ledger delta at the given height without taking the store lock."""
        self._insert_ledger_delta(block_height, delta)

    def _insert_ledger_delta(self, block_height: int, delta: Delta) -> None:
        if block_height == 0:
            old_ledger = MapLedger()
        else:
            old_ledger = self._ledger.get(block_height - 1) or MapLedger()

        new_ledger = MapLedger()
        for register_id, old_value in old_ledger.registers.items():
            if register_id not in delta.data or delta.data[register_id] is not None:
                new_ledger.register_touches.add(register_id)
                new_ledger.registers[register_id] = old_value

        for register_id, value in delta.register_updates():
            new_ledger.set(register_id.owner, register_id.controller, register_id.key, value)

        self._ledger[block_height] = new_ledger

    def events_by_height(self, block_height: int, event_type: str) -> list[Event]:
        with self._lock:
            return [
                event
                for event in self._events_by_block_height.get(block_height, [])
                if not event_type or event.type == event_type
            ]

    def _insert_events(self, block_height: int, events: Iterable[Event] | None) -> None:
        self._events_by_block_height.setdefault(block_height, []).extend(events or ())