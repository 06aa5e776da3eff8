from chainstore.model import (
    ZERO_ID,
    Block,
    Delta,
    Header,
    LightCollection,
    Payload,
    ProposalKey,
    RegisterID,
    TransactionBody,
    View,
)


def test_block_id_is_deterministic():
    a = Block(header=Header(height=1234, parent_id=b"\x01" * 32))
    b = Block(header=Header(height=1234, parent_id=b"\x01" * 32))
    assert a.id() == b.id()
    assert len(a.id()) == 32


def test_block_id_depends_on_height_and_payload():
    base = Block(header=Header(height=1))
    other_height = Block(header=Header(height=2))
    other_payload = Block(header=Header(height=1), payload=Payload(guarantees=[b"\x02" * 32]))
    ids = {base.id(), other_height.id(), other_payload.id()}
    assert len(ids) == 3


def test_default_block_has_zero_parent():
    assert Block().header.parent_id == ZERO_ID


def test_collection_id_depends_on_order():
    first, second = b"\x01" * 32, b"\x02" * 32
    assert LightCollection([first, second]).id() == LightCollection([first, second]).id()
    assert LightCollection([first, second]).id() != LightCollection([second, first]).id()


def test_transaction_id_changes_with_content():
    tx = TransactionBody(script=b"transaction { execute {} }", gas_limit=10)
    same = TransactionBody(script=b"transaction { execute {} }", gas_limit=10)
    other = TransactionBody(
        script=b"transaction { execute {} }",
        gas_limit=10,
        proposal_key=ProposalKey(address="0000000000000001", key_index=1),
    )
    assert tx.id() == same.id()
    assert tx.id() != other.id()


def test_register_id_ordering():
    assert RegisterID("", "", "a") < RegisterID("", "", "b")
    assert RegisterID("a", "", "z") > RegisterID("", "z", "z")


def test_delta_register_updates_sorted():
    d = Delta()
    d.set("", "", "b", b"2")
    d.set("", "", "a", b"1")
    d.set("", "", "c", None)
    assert d.register_updates() == [
        (RegisterID("", "", "a"), b"1"),
        (RegisterID("", "", "b"), b"2"),
        (RegisterID("", "", "c"), None),
    ]


def test_delta_set_overwrites():
    d = Delta()
    d.set("o", "c", "k", b"first")
    d.set("o", "c", "k", b"second")
    assert d.register_updates() == [(RegisterID("o", "c", "k"), b"second")]


def test_view_reads_through_to_reader():
    backing = {("", "", "foo"): b"bar"}
    view = View(lambda o, c, k: backing.get((o, c, k)))
    assert view.get("", "", "foo") == b"bar"
    assert view.get("", "", "missing") is None


def test_view_prefers_local_delta():
    backing = {("", "", "foo"): b"bar"}
    delta = Delta()
    delta.set("", "", "foo", b"local")
    delta.set("", "", "gone", None)
    view = View(lambda o, c, k: backing.get((o, c, k), b"backing"), delta)
    assert view.get("", "", "foo") == b"local"
    assert view.get("", "", "gone") is None