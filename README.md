# chainstore

Storage for chain state: finalized blocks, collections, transactions and
their results, emitted events, and ledger registers that are versioned by
block height.

Two implementations share one abstract interface, `chainstore.store.Store`:

- `chainstore.memstore.MemStore` keeps everything in memory.
- `chainstore.diskstore.DiskStore` keeps everything in an SQLite file
  (`chain.db`) inside a directory, with every value encoded as canonical
  CBOR. Keys are laid out so that byte order matches the numeric order of
  heights and indices.

Both are safe to use from several threads.

## Installation

```
pip install chainstore
```

To run the test suite, install the test extra:

```
pip install "chainstore[test]"
pytest
```

## Usage

```python
from chainstore.errors import NotFoundError
from chainstore.memstore import MemStore
from chainstore.model import Block, Delta, Header

store = MemStore()

block = Block(header=Header(height=0))
delta = Delta()
delta.set("", "", "foo", b"bar")

store.commit_block(block, [], {}, {}, delta, [])

assert store.latest_block() == block
assert store.ledger_view_by_height(0).get("", "", "foo") == b"bar"

try:
    store.block_by_height(7)
except NotFoundError:
    print("no block at height 7")
```

The interface offers `latest_block`, `store_block`, `block_by_id`,
`block_by_height`, `commit_block`, `collection_by_id`, `transaction_by_id`,
`transaction_result_by_id`, `ledger_view_by_height` and `events_by_height`.

A lookup that finds nothing raises `chainstore.errors.NotFoundError`.
`commit_block` raises `ValueError` when the number of transactions differs
from the number of transaction results.

`events_by_height(height, event_type)` returns every event of the block when
`event_type` is empty, and only events of that type otherwise. `MemStore`
returns them in the order they were inserted; `DiskStore` returns them
ordered by transaction index and then event index.

### Entities

`chainstore.model` defines the stored entities as dataclasses: `Block`
(with `Header` and `Payload`), `LightCollection`, `TransactionBody` (with
`ProposalKey`), `Event`, `AccountPublicKey` and `RegisterID`. `Block`,
`LightCollection` and `TransactionBody` have an `id()` method that derives a
32-byte identifier from their content.

A `Delta` collects register writes; writing `None` marks the register as
deleted. A `View`, as returned by `ledger_view_by_height`, reads registers
through its own delta first and then from the store.

### Disk store

```python
from chainstore.config import with_path
from chainstore.diskstore import DiskStore

with DiskStore(with_path("./flowdb")) as store:
    store.store_block(block)
```

`DiskStore` also offers `insert_collection`, `insert_transaction`,
`insert_transaction_result`, `insert_ledger_delta` and `insert_events` for
writing single entities, `sync()` to flush pending writes into the database
file, and `close()`, which syncs and closes the database (called on leaving a
`with` block).

Options are built with `with_path`, `with_logger` and `with_truncate`, which
`chainstore.config.build_config` applies in order over the default
configuration (path `./flowdb`, a logger that discards everything,
truncation off). The store uses only the path; the logger and truncate
settings are kept on `store.config` but do not change its behaviour.

The disk store records, for each register, the block heights at which it
changed (`chainstore.changelog.Changelog`, rebuilt from disk when the store
is opened). A ledger view at height *h* then reads the newest value written
at or below *h*. Deleting a register counts as a change, so the register
reads as `None` from that height on.

### Encoding and keys

`chainstore.encoding` has `encode_*`/`decode_*` pairs for blocks,
collections, transactions, transaction results, events, unsigned 64-bit
integers and changelists. `chainstore.keys` builds the keys under which the
disk store files each entity.

### Results

`chainstore.results` holds `TransactionResult` and `ScriptResult`, each with
`succeeded()` and `reverted()`, `StorableTransactionResult`, the form that
gets stored, and `TransactionResultDebug` with the helpers
`new_transaction_invalid_hash_algo` and `new_transaction_invalid_signature`.
`chainstore.errors.FlowError` wraps an error raised during execution.

## What it does not do

This is a storage library only. It does not execute transactions or
scripts, has no command-line tool and no network server. The disk store
keeps one state: it has no named snapshots, no switching between saved
states and no separate garbage-collection step.