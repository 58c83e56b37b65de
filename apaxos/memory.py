"""In-memory state of a node."""

import copy
import threading
import time

from .messages import BallotNumber, Block, BlockMetaData


class Memory:
    """Balances, ballots, datastore and accepted values held by one node."""

    def __init__(self, node_id, balances, sequence_start=None):
        self.service_status = True
        self.sequence_number = (
            time.time_ns() // 1_000_000 if sequence_start is None else sequence_start
        )
        self.clients = dict(balances)
        self.ballot_number = BallotNumber(number=0, node_id=node_id)
        self.last_committed_message = BallotNumber(number=0, node_id="")
        self.accepted_num = None
        self.datastore = Block(metadata=BlockMetaData(node_id=node_id), transactions=[])
        self.accepted_val = []
        self._lock = threading.RLock()

    def load_state(self, state):
        """Replace the memory contents with a stored snapshot."""
        with self._lock:
            self.clients = dict(state.clients)
            self.last_committed_message = copy.deepcopy(state.last_committed_message)
            self.ballot_number = copy.deepcopy(state.ballot_number)
            self.accepted_num = copy.deepcopy(
                state.accepted_num if state.accepted_num is not None else BallotNumber()
            )
            self.datastore = copy.deepcopy(state.datastore)
            self.accepted_val = copy.deepcopy(list(state.accepted_val))

    def next_sequence_number(self):
        """Return the current sequence number and advance it by one."""
        with self._lock:
            current = self.sequence_number
            self.sequence_number += 1
            return current

    def set_balance(self, client, balance):
        with self._lock:
            self.clients[client] = balance

    def update_balance(self, client, amount):
        with self._lock:
            self.clients[client] = self.clients.get(client, 0) + amount

    def balance(self, client):
        return self.clients.get(client, 0)

    def set_ballot_number(self, ballot):
        """Adopt the number of the given ballot, keeping this node's id."""
        with self._lock:
            self.ballot_number.number = ballot.number if ballot is not None else 0

    def add_transaction(self, transaction):
        with self._lock:
            self.datastore.transactions.append(transaction)

    def rerun_transactions(self):
        """Apply every datastore transaction to the balances again."""
        with self._lock:
            for transaction in self.datastore.transactions:
                self.update_balance(transaction.sender, -transaction.amount)
                self.update_balance(transaction.receiver, transaction.amount)

    def clear_datastore(self, block):
        """Drop datastore transactions whose sequence numbers appear in the block."""
        with self._lock:
            committed = {t.sequence_number for t in block.transactions}
            self.datastore.transactions = [
                t for t in self.datastore.transactions if t.sequence_number not in committed
            ]