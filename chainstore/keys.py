"""Key layout of the on-disk store.

Numeric parts of keys are zero-padded to 32 digits so that lexicographic
ordering of keys matches numeric ordering.
"""

from __future__ import annotations

from chainstore.model import Identifier, RegisterID

BLOCK_KEY_PREFIX = "block_by_height"
BLOCK_ID_INDEX_KEY_PREFIX = "block_id_to_height"
COLLECTION_KEY_PREFIX = "collection_by_id"
TRANSACTION_KEY_PREFIX = "transaction_by_id"
TRANSACTION_RESULT_KEY_PREFIX = "transaction_result_by_id"
LEDGER_KEY_PREFIX = "ledger_by_block_height"
EVENT_KEY_PREFIX = "event_by_block_height"
LEDGER_CHANGELOG_KEY_PREFIX = "ledger_changelog_by_register_id"
LEDGER_VALUE_KEY_PREFIX = "ledger_value_by_block_height_register_id"


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode() if isinstance(value, str) else bytes(value)


def latest_block_key() -> bytes:
    return b"latest_block_height"


def block_key(block_height: int) -> bytes:
    return f"{BLOCK_KEY_PREFIX}-{block_height:032d}".encode()


def block_id_index_key(block_id: Identifier) -> bytes:
    return f"{BLOCK_ID_INDEX_KEY_PREFIX}-{bytes(block_id).hex()}".encode()


def collection_key(collection_id: Identifier) -> bytes:
    return f"{COLLECTION_KEY_PREFIX}-{bytes(collection_id).hex()}".encode()


def transaction_key(tx_id: Identifier) -> bytes:
    return f"{TRANSACTION_KEY_PREFIX}-{bytes(tx_id).hex()}".encode()


def transaction_result_key(tx_id: Identifier) -> bytes:
    return f"{TRANSACTION_RESULT_KEY_PREFIX}-{bytes(tx_id).hex()}".encode()


def event_key(block_height: int, tx_index: int, event_index: int, event_type: str) -> bytes:
    return (
        f"{EVENT_KEY_PREFIX}-{block_height:032d}-{tx_index:032d}"
        f"-{event_index:032d}-{event_type}"
    ).encode()


def event_key_block_prefix(block_height: int) -> bytes:
    return f"{EVENT_KEY_PREFIX}-{block_height:032d}".encode()


def event_key_has_type(key: bytes | str, event_type: bytes | str) -> bool:
    """Return True if the event key ends with the given event type."""
    return _as_bytes(key).endswith(_as_bytes(event_type))


def ledger_key(block_height: int) -> bytes:
    return f"{LEDGER_KEY_PREFIX}-{block_height:032d}".encode()


def ledger_changelog_key(register_id: RegisterID) -> bytes:
    return (
        f"{LEDGER_CHANGELOG_KEY_PREFIX}-{register_id.owner}"
        f"-{register_id.controller}-{register_id.key}"
    ).encode()


def ledger_value_key(register_id: RegisterID, block_height: int) -> bytes:
    return f"{LEDGER_VALUE_KEY_PREFIX}-{register_id}-{block_height:032d}".encode()


def register_id_from_ledger_changelog_key(key: bytes | str) -> RegisterID:
    """Recover the register ID from a ledger changelog key."""
    text = key.decode() if isinstance(key, (bytes, bytearray)) else key
    prefix = LEDGER_CHANGELOG_KEY_PREFIX + "-"
    register_string = text[len(prefix):] if text.startswith(prefix) else text
    parts = register_string.split("-", 2)
    if len(parts) < 3:
        raise ValueError(f"failed to parse register ID from {text}")
    return RegisterID(owner=parts[0], controller=parts[1], key=parts[2])