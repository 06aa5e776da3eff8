"""Canonical CBOR encoding of stored entities."""

from __future__ import annotations

from datetime import timezone
from typing import Any, Callable, TypeVar

import cbor2

from chainstore.changelog import Changelist
from chainstore.model import (
    Block,
    Event,
    Header,
    LightCollection,
    Payload,
    ProposalKey,
    TransactionBody,
)
from chainstore.results import StorableTransactionResult

_MAX_UINT64 = (1 << 64) - 1

T = TypeVar("T")


def _dump(obj: Any) -> bytes:
    return cbor2.dumps(obj, canonical=True, timezone=timezone.utc)


def _load(data: bytes, what: str, build: Callable[[Any], T]) -> T:
    obj = cbor2.loads(data)
    try:
        return build(obj)
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise ValueError(f"could not decode {what}: {exc}") from exc


def _header_to_obj(header: Header) -> dict:
    return {
        "ChainID": header.chain_id,
        "ParentID": bytes(header.parent_id),
        "Height": header.height,
        "View": header.view,
        "Timestamp": header.timestamp,
    }


def _header_from_obj(obj: dict) -> Header:
    return Header(
        height=int(obj["Height"]),
        parent_id=bytes(obj["ParentID"]),
        chain_id=str(obj["ChainID"]),
        view=int(obj["View"]),
        timestamp=obj["Timestamp"],
    )


def _event_to_obj(event: Event) -> dict:
    return {
        "Type": event.type,
        "TransactionID": bytes(event.transaction_id),
        "TransactionIndex": event.transaction_index,
        "EventIndex": event.event_index,
        "Payload": bytes(event.payload),
    }


def _event_from_obj(obj: dict) -> Event:
    return Event(
        type=str(obj["Type"]),
        transaction_id=bytes(obj["TransactionID"]),
        transaction_index=int(obj["TransactionIndex"]),
        event_index=int(obj["EventIndex"]),
        payload=bytes(obj["Payload"]),
    )


def encode_block(block: Block) -> bytes:
    return _dump(
        {
            "Header": _header_to_obj(block.header),
            "Payload": {"Guarantees": [bytes(g) for g in block.payload.guarantees]},
        }
    )


def decode_block(data: bytes) -> Block:
    return _load(
        data,
        "block",
        lambda obj: Block(
            header=_header_from_obj(obj["Header"]),
            payload=Payload(guarantees=[bytes(g) for g in obj["Payload"]["Guarantees"]]),
        ),
    )


def encode_collection(collection: LightCollection) -> bytes:
    return _dump({"Transactions": [bytes(t) for t in collection.transactions]})


def decode_collection(data: bytes) -> LightCollection:
    return _load(
        data,
        "collection",
        lambda obj: LightCollection(transactions=[bytes(t) for t in obj["Transactions"]]),
    )


def encode_transaction(tx: TransactionBody) -> bytes:
    return _dump(
        {
            "Script": bytes(tx.script),
            "Arguments": [bytes(a) for a in tx.arguments],
            "ReferenceBlockID": bytes(tx.reference_block_id),
            "GasLimit": tx.gas_limit,
            "ProposalKey": {
                "Address": tx.proposal_key.address,
                "KeyIndex": tx.proposal_key.key_index,
                "SequenceNumber": tx.proposal_key.sequence_number,
            },
            "Payer": tx.payer,
            "Authorizers": list(tx.authorizers),
        }
    )


def _transaction_from_obj(obj: dict) -> TransactionBody:
    key = obj["ProposalKey"]
    return TransactionBody(
        script=bytes(obj["Script"]),
        arguments=[bytes(a) for a in obj["Arguments"]],
        reference_block_id=bytes(obj["ReferenceBlockID"]),
        gas_limit=int(obj["GasLimit"]),
        proposal_key=ProposalKey(
            address=str(key["Address"]),
            key_index=int(key["KeyIndex"]),
            sequence_number=int(key["SequenceNumber"]),
        ),
        payer=str(obj["Payer"]),
        authorizers=[str(a) for a in obj["Authorizers"]],
    )


def decode_transaction(data: bytes) -> TransactionBody:
    return _load(data, "transaction", _transaction_from_obj)


def encode_transaction_result(result: StorableTransactionResult) -> bytes:
    return _dump(
        {
            "ErrorCode": result.error_code,
            "ErrorMessage": result.error_message,
            "Logs": list(result.logs),
            "Events": [_event_to_obj(e) for e in result.events],
        }
    )


def decode_transaction_result(data: bytes) -> StorableTransactionResult:
    return _load(
        data,
        "transaction result",
        lambda obj: StorableTransactionResult(
            error_code=int(obj["ErrorCode"]),
            error_message=str(obj["ErrorMessage"]),
            logs=[str(line) for line in obj["Logs"]],
            events=[_event_from_obj(e) for e in obj["Events"]],
        ),
    )


def _check_uint64(value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= _MAX_UINT64:
        raise ValueError(f"not an unsigned 64-bit integer: {value!r}")
    return value


def encode_uint64(value: int) -> bytes:
    return _dump(_check_uint64(value))


def decode_uint64(data: bytes) -> int:
    return _load(data, "uint64", _check_uint64)


def encode_event(event: Event) -> bytes:
    return _dump(_event_to_obj(event))


def decode_event(data: bytes) -> Event:
    return _load(data, "event", _event_from_obj)


def encode_changelist(clist: Changelist) -> bytes:
    return _dump([_check_uint64(b) for b in clist.blocks])


def decode_changelist(data: bytes) -> Changelist:
    return _load(
        data,
        "changelist",
        lambda obj: Changelist(blocks=[_check_uint64(b) for b in obj]),
    )