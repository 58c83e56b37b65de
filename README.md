# apaxos

apaxos holds the building blocks of a small distributed transaction system
in which every client's account lives on a shard (a node) and nodes agree on
blocks of transactions with a modified Paxos protocol. The package provides:

* the message and packet types the nodes exchange, with a JSON wire encoding;
* a node's in-memory state (balances, ballots, pending datastore, accepted values);
* ordering of ballot numbers and blocks;
* configuration loading from defaults, a YAML file and environment variables;
* a gRPC dialer for calling the apaxos, liveness and transactions services of nodes;
* an operator console (`Controller`) that drives a cluster from typed commands
  and CSV test sets;
* MongoDB storage for committed blocks and state snapshots, and a worker that
  takes snapshots periodically;
* latency/throughput metrics and a console logger.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What the package does not do

The package installs no command. It has no node gRPC server and no consensus
module: it cannot itself run a node, answer RPC calls or carry out Paxos
rounds. The dialer and the controller talk to nodes that serve the
`apaxos.Apaxos`, `liveness.Liveness` and `transactions.Transactions` services
with JSON-encoded messages; such nodes must be provided separately.

## Configuration

`apaxos.config.load_config(path, environ=None)` starts from the defaults of
`Config`, merges the YAML file at `path` (a missing or unreadable file is
logged and skipped), then merges environment variables starting with `apax_`.
The rest of such a name is lower-cased and a double underscore selects a
nested key, so `apax_grpc__port=9090` sets `grpc.port`. When `environ` is
omitted, `os.environ` is used. A value that cannot be converted to its
field's type raises `ValueError`.

```yaml
node_id: S1
client: A
majority: 3
check_snapshots: false
workers_enabled: false
workers_interval: 10       # seconds between snapshots
log_level: info            # debug, info, warn, error, panic, fatal

nodes:
  - { key: S1, value: "127.0.0.1:5001" }
  - { key: S2, value: "127.0.0.1:5002" }
  - { key: S3, value: "127.0.0.1:5003" }

clients:
  - { key: A, value: "100" }
  - { key: B, value: "100" }
  - { key: C, value: "100" }

clients_shards:
  - { key: A, value: S1 }
  - { key: B, value: S2 }
  - { key: C, value: S3 }

grpc:
  host: 127.0.0.1
  port: 5001
  request_timeout: 10      # milliseconds
  majority_timeout: 10     # microseconds

mongodb:
  uri: mongodb://localhost:27017
  database: apaxos
```

`Config.nodes_map()`, `Config.clients_map()` and `Config.client_shards()`
turn the pair lists into dictionaries; `Config.balances()` maps clients to
integer balances, counting values that are not integers as 0.

## The controller console

`apaxos.controller.Controller(config)` reads commands from any iterable of
lines; `run` prints a `$ ` prompt before each line and stops at `exit` or at
the end of the input:

```python
import sys
from apaxos.config import load_config
from apaxos.controller import Controller

Controller(load_config("controller.yaml")).run(sys.stdin)
```

```
exit                                      close the controller
help                                      print the instructions
tests <csv path>                          load a CSV file of test sets
next                                      run the next loaded test set
reset                                     set every server back to active
block <node>                              take a node out of service
unblock <node>                            bring a single node back
ping <node>                               print true or false for a node
printbalance <client>                     a client's balance on its own shard
printlogs <node>                          a node's datastore and accepted blocks
printdb <node>                            a node's committed blocks
performance                               average throughput and latency of all nodes
aggrigated <client>                       a client's balance on every node that answers
transaction <sender> <receiver> <amount>  submit a transfer to the sender's shard
```

An unknown command prints `command not found`; `next` past the last set
prints `no test-set available`.

A test file (read by `load_test_sets(path, client_shards)`) has one row per
transaction. A row whose first column holds a set number starts a new set;
its third column lists the live servers, for example `"[S1, S2, S3]"`. The
second column of each row holds a transfer such as `"(A, B, 4)"`. Running a
set unblocks every node, blocks the nodes not listed, sends the transfers to
each sender's shard, and unblocks every node again.

## Storage and snapshots

`apaxos.database.ping(config.mongodb)` checks that the database answers a
ping. `Database.connect(config.mongodb, node_id)` binds the collections
`<node_id>_history` (committed blocks) and `<node_id>_states` (snapshots);
`get_last_state()` returns the newest snapshot as a `State`, or `None`.

`apaxos.worker.Worker(memory, database, interval).start(enabled, stop_event)`
stores `snapshot_state(memory)` every `interval` seconds until the event is
set, logging failed backups and carrying on.

## Using the library

```python
from apaxos.memory import Memory
from apaxos.messages import BallotNumber, Transaction
from apaxos.ordering import compare_ballot_numbers

memory = Memory("S1", {"A": 100, "B": 100})
memory.update_balance("A", -10)
memory.add_transaction(Transaction(sender="A", receiver="B", amount=10,
                                   sequence_number=memory.next_sequence_number()))

compare_ballot_numbers(BallotNumber(number=3, node_id="S1"),
                       BallotNumber(number=2, node_id="S1"))   # 1
```