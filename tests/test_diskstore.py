import pytest

from chainstore.config import with_path
from chainstore.diskstore import DiskStore
from chainstore.errors import NotFoundError
from chainstore.model import (
    Block,
    Delta,
    Event,
    Header,
    LightCollection,
    Payload,
    ProposalKey,
    TransactionBody,
)
from chainstore.results import StorableTransactionResult


def _id(n: int) -> bytes:
    return n.to_bytes(32, "big")


def _tx() -> TransactionBody:
    return TransactionBody(
        script=b"transaction { execute { log(\"Hello, World!\") } }",
        arguments=[b"1", b"2"],
        reference_block_id=_id(7),
        gas_limit=10,
        proposal_key=ProposalKey(address="01", key_index=1, sequence_number=0),
        payer="02",
        authorizers=["03"],
    )


def _event(n: int, event_type: str = "flow.AccountCreated") -> Event:
    return Event(
        type=event_type,
        transaction_id=_id(100 + n),
        transaction_index=n,
        event_index=n,
        payload=f"payload-{n}".encode(),
    )


def _result() -> StorableTransactionResult:
    return StorableTransactionResult(
        error_code=42,
        error_message="foo",
        logs=["a", "b"],
        events=[_event(1)],
    )


@pytest.fixture
def store(tmp_path):
    s = DiskStore(with_path(str(tmp_path / "db")))
    yield s
    s.close()


def test_blocks_not_found(store):
    with pytest.raises(NotFoundError):
        store.block_by_id(_id(99))
    with pytest.raises(NotFoundError):
        store.block_by_height(1)
    with pytest.raises(NotFoundError):
        store.latest_block()


def test_blocks_insert_and_get(store):
    block1 = Block(header=Header(height=1))
    block2 = Block(header=Header(height=2))

    store.store_block(block1)
    store.store_block(block1)
    assert store.block_by_height(1) == block1
    assert store.block_by_id(block1.id()) == block1
    assert store.latest_block() == block1

    store.store_block(block2)
    assert store.latest_block() == block2


def test_lower_block_does_not_replace_latest(store):
    store.store_block(Block(header=Header(height=5)))
    store.store_block(Block(header=Header(height=3)))
    assert store.latest_block().header.height == 5
    assert store.block_by_height(3).header.height == 3


def test_block_with_payload_round_trip(store):
    block = Block(header=Header(height=1234, parent_id=_id(1)), payload=Payload([_id(2)]))
    store.store_block(block)
    assert store.block_by_id(block.id()) == block


def test_collections(store):
    col = LightCollection(transactions=[_id(1), _id(2), _id(3)])
    with pytest.raises(NotFoundError):
        store.collection_by_id(col.id())
    store.insert_collection(col)
    assert store.collection_by_id(col.id()) == col


def test_transactions(store):
    tx = _tx()
    with pytest.raises(NotFoundError):
        store.transaction_by_id(tx.id())
    store.insert_transaction(tx)
    assert store.transaction_by_id(tx.id()).id() == tx.id()


def test_transaction_results(store):
    with pytest.raises(NotFoundError):
        store.transaction_result_by_id(_id(1))
    result = _result()
    store.insert_transaction_result(_id(2), result)
    assert store.transaction_result_by_id(_id(2)) == result


def test_ledger_get_set(store):
    d = Delta()
    d.set("", "", "foo", b"bar")
    store.insert_ledger_delta(1, d)
    assert store.ledger_view_by_height(1).get("", "", "foo") == b"bar"


def test_ledger_unknown_register_is_none(store):
    assert store.ledger_view_by_height(1).get("", "", "missing") is None


def test_ledger_versioning(store):
    total_blocks = 10
    for i in range(2, total_blocks + 2):
        d = Delta()
        for j in range(i - 1, i + 2):
            d.set("", "", str(j), bytes([i - 1]))
        store.insert_ledger_delta(i - 1, d)

    view = store.ledger_view_by_height(1)
    for i in range(1, 4):
        assert view.get("", "", str(i)) == bytes([1])

    for block in range(2, total_blocks):
        view = store.ledger_view_by_height(block)
        for i in range(1, block):
            assert view.get("", "", str(i)) == bytes([i])
        for i in range(block, block + 3):
            assert view.get("", "", str(i)) == bytes([block])


def test_ledger_deletion(store):
    d1 = Delta()
    d1.set("", "", "foo", b"bar")
    store.insert_ledger_delta(1, d1)
    d2 = Delta()
    d2.set("", "", "foo", None)
    store.insert_ledger_delta(2, d2)
    assert store.ledger_view_by_height(1).get("", "", "foo") == b"bar"
    assert store.ledger_view_by_height(2).get("", "", "foo") is None


def test_insert_events(store):
    events = [_event(0)]
    store.insert_events(1, events)
    assert store.events_by_height(1, "") == events


@pytest.fixture
def event_sets(store):
    all_events, events_a, events_b = [], [], []
    for i in range(10):
        event = Event(
            type="A" if i % 2 == 0 else "B",
            transaction_id=_id(i),
            transaction_index=i,
            event_index=i * 2,
            payload=bytes([i]),
        )
        (events_a if i % 2 == 0 else events_b).append(event)
        all_events.append(event)
    store.insert_events(1, all_events)
    store.insert_events(2, None)
    return all_events, events_a, events_b


def test_events_by_block(store, event_sets):
    all_events, _, _ = event_sets
    assert store.events_by_height(1, "") == all_events
    assert store.events_by_height(2, "") == []
    assert store.events_by_height(3, "") == []


def test_events_by_type(store, event_sets):
    _, events_a, events_b = event_sets
    assert store.events_by_height(1, "A") == events_a
    assert store.events_by_height(1, "B") == events_b
    assert store.events_by_height(1, "C") == []


def test_commit_block(store):
    block = Block(header=Header(height=3))
    col = LightCollection(transactions=[_id(5)])
    tx = _tx()
    result = _result()
    d = Delta()
    d.set("", "", "k", b"v")
    events = [_event(0), _event(1)]

    store.commit_block(block, [col], {tx.id(): tx}, {tx.id(): result}, d, events)

    assert store.latest_block() == block
    assert store.collection_by_id(col.id()) == col
    assert store.transaction_by_id(tx.id()) == tx
    assert store.transaction_result_by_id(tx.id()) == result
    assert store.ledger_view_by_height(3).get("", "", "k") == b"v"
    assert store.events_by_height(3, "") == events


def test_commit_block_count_mismatch(store):
    tx = _tx()
    with pytest.raises(ValueError, match=r"transactions count \(1\) does not match result count \(0\)"):
        store.commit_block(Block(header=Header(height=1)), [], {tx.id(): tx}, {}, Delta(), None)
    with pytest.raises(NotFoundError):
        store.latest_block()


def test_commit_block_is_atomic(store):
    tx = _tx()
    block = Block(header=Header(height=1))
    with pytest.raises(KeyError):
        store.commit_block(block, [], {tx.id(): tx}, {_id(9): _result()}, Delta(), None)
    with pytest.raises(NotFoundError):
        store.block_by_height(1)
    with pytest.raises(NotFoundError):
        store.transaction_by_id(tx.id())


def test_persistence(tmp_path):
    path = str(tmp_path / "db")
    block = Block(header=Header(height=1))
    tx = _tx()
    events = [_event(0)]
    d = Delta()
    d.set("", "", "foo", b"bar")

    with DiskStore(with_path(path)) as first:
        first.store_block(block)
        first.insert_transaction(tx)
        first.insert_events(1, events)
        first.insert_ledger_delta(1, d)
        first.sync()

    with DiskStore(with_path(path)) as second:
        assert second.latest_block() == block
        assert second.transaction_by_id(tx.id()).id() == tx.id()
        assert second.events_by_height(1, "") == events
        assert second.ledger_view_by_height(1).get("", "", "foo") == b"bar"
        assert second.ledger_view_by_height(5).get("", "", "foo") == b"bar"


def test_config_path_used(tmp_path):
    path = str(tmp_path / "custom")
    with DiskStore(with_path(path)) as s:
        assert s.path == path
        assert s.config.db_path == path
    assert (tmp_path / "custom" / "chain.db").exists()