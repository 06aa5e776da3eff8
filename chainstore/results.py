"""Results of executing transactions and scripts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from chainstore.model import AccountPublicKey, Event, Identifier, TransactionBody, ZERO_ID


@dataclass
class StorableTransactionResult:
    """The persisted form of a transaction result."""

    error_code: int = 0
    error_message: str = ""
    logs: list[str] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)


@dataclass
class TransactionResultDebug:
    """Details about an unsuccessful transaction execution."""

    message: str = ""
    meta: Optional[dict[str, str]] = None


@dataclass
class TransactionResult:
    """The result of executing a transaction."""

    transaction_id: Identifier = ZERO_ID
    computation_used: int = 0
    error: Optional[BaseException] = None
    logs: list[str] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    debug: Optional[TransactionResultDebug] = None

    def succeeded(self) -> bool:
        """Return True if the transaction executed without errors."""
        return self.error is None

    def reverted(self) -> bool:
        """Return True if the transaction executed with errors."""
        return not self.succeeded()


@dataclass
class ScriptResult:
    """The result of executing a script."""

    script_id: Identifier = ZERO_ID
    value: Any = None
    error: Optional[BaseException] = None
    logs: list[str] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    def succeeded(self) -> bool:
        """Return True if the script executed without errors."""
        return self.error is None

    def reverted(self) -> bool:
        """Return True if the script executed with errors."""
        return not self.succeeded()


def new_transaction_invalid_hash_algo(
    key: AccountPublicKey, address: str, invalid_algo: Any
) -> TransactionResultDebug:
    """Describe a transaction signed with the wrong hashing algorithm."""
    return TransactionResultDebug(
        message=(
            f"invalid hashing algorithm signature: public key {key.index} on account "
            f"{address} does not have a valid signature: key requires {key.hash_algo} "
            f"hashing algorithm, but {invalid_algo} was used"
        ),
        meta=None,
    )


def new_transaction_invalid_signature(tx: TransactionBody) -> TransactionResultDebug:
    """Describe a transaction with an invalid signature."""
    return TransactionResultDebug(
        message="",
        meta={
            "payer": str(tx.payer),
            "proposer": str(tx.proposal_key.address),
            "proposerKeyIndex": str(tx.proposal_key.key_index),
            "authorizers": "[" + " ".join(str(a) for a in tx.authorizers) + "]",
            "gasLimit": str(tx.gas_limit),
        },
    )