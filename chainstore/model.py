"""Chain entities persisted by the storage layer."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import cbor2

Identifier = bytes
RegisterValue = Optional[bytes]

ZERO_ID: Identifier = bytes(32)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _fingerprint(obj: Any) -> Identifier:
    return hashlib.sha3_256(cbor2.dumps(obj, canonical=True)).digest()


@dataclass(frozen=True, order=True)
class RegisterID:
    """Identifies one register of the ledger."""

    owner: str
    controller: str
    key: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.controller}/{self.key}"


@dataclass
class Header:
    """Block header."""

    height: int = 0
    parent_id: Identifier = ZERO_ID
    chain_id: str = ""
    view: int = 0
    timestamp: datetime = EPOCH

    def _canonical(self) -> list:
        return [
            self.chain_id,
            bytes(self.parent_id),
            self.height,
            self.view,
            self.timestamp.isoformat(),
        ]


@dataclass
class Payload:
    """Block payload: the IDs of the guaranteed collections."""

    guarantees: list[Identifier] = field(default_factory=list)

    def _canonical(self) -> list:
        return [bytes(g) for g in self.guarantees]


@dataclass
class Block:
    """A block of the chain."""

    header: Header = field(default_factory=Header)
    payload: Payload = field(default_factory=Payload)

    def id(self) -> Identifier:
        """Return the content-derived identifier of the block."""
        return _fingerprint([self.header._canonical(), self.payload._canonical()])


@dataclass
class LightCollection:
    """A collection holding transaction IDs only."""

    transactions: list[Identifier] = field(default_factory=list)

    def id(self) -> Identifier:
        """Return the content-derived identifier of the collection."""
        return _fingerprint([bytes(t) for t in self.transactions])


@dataclass
class ProposalKey:
    """The key proposing a transaction."""

    address: str = ""
    key_index: int = 0
    sequence_number: int = 0


@dataclass
class AccountPublicKey:
    """A public key attached to an account."""

    index: int = 0
    public_key: bytes = b""
    sign_algo: str = ""
    hash_algo: str = ""
    weight: int = 0
    sequence_number: int = 0
    revoked: bool = False


@dataclass
class TransactionBody:
    """The body of a transaction."""

    script: bytes = b""
    arguments: list[bytes] = field(default_factory=list)
    reference_block_id: Identifier = ZERO_ID
    gas_limit: int = 0
    proposal_key: ProposalKey = field(default_factory=ProposalKey)
    payer: str = ""
    authorizers: list[str] = field(default_factory=list)

    def id(self) -> Identifier:
        """Return the content-derived identifier of the transaction."""
        return _fingerprint(
            [
                bytes(self.script),
                [bytes(a) for a in self.arguments],
                bytes(self.reference_block_id),
                self.gas_limit,
                [
                    self.proposal_key.address,
                    self.proposal_key.key_index,
                    self.proposal_key.sequence_number,
                ],
                self.payer,
                list(self.authorizers),
            ]
        )


@dataclass
class Event:
    """An event emitted by a transaction."""

    type: str = ""
    transaction_id: Identifier = ZERO_ID
    transaction_index: int = 0
    event_index: int = 0
    payload: bytes = b""


@dataclass
class Delta:
    """A set of register writes; a value of None marks a deletion."""

    data: dict[RegisterID, RegisterValue] = field(default_factory=dict)

    def set(self, owner: str, controller: str, key: str, value: RegisterValue) -> None:
        self.data[RegisterID(owner, controller, key)] = value

    def register_updates(self) -> list[tuple[RegisterID, RegisterValue]]:
        """Return the written registers and their values, ordered by register ID."""
        return sorted(self.data.items(), key=lambda item: item[0])


Reader = Callable[[str, str, str], RegisterValue]


@dataclass
class View:
    """A view of the ledger: local writes over a read function."""

    read: Reader
    delta: Delta = field(default_factory=Delta)

    def get(self, owner: str, controller: str, key: str) -> RegisterValue:
        register_id = RegisterID(owner, controller, key)
        if register_id in self.delta.data:
            return self.delta.data[register_id]
        return self.read(owner, controller, key)