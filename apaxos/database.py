"""MongoDB storage for committed blocks and node snapshots."""

from __future__ import annotations

from pymongo import MongoClient

from .models import State, block_from_document, block_to_document

HISTORY_COLLECTION = "history"
STATES_COLLECTION = "states"


def ping(config):
    """Connect to the cluster named by a MongoConfig and run a ping command.

    Raises the driver's error when the cluster cannot be reached.
    """
    client = MongoClient(config.uri)
    try:
        client[config.database].command("ping")
    finally:
        client.close()


class Database:
    """Committed block history and state snapshots of one node."""

    def __init__(self, history, states, client=None):
        self.history = history
        self.states = states
        self.client = client

    @classmethod
    def connect(cls, config, prefix):
        """Open a connection and bind the node's ``<prefix>_history`` and ``<prefix>_states``."""
        client = MongoClient(config.uri)
        database = client[config.database]
        return cls(
            history=database[f"{prefix}_{HISTORY_COLLECTION}"],
            states=database[f"{prefix}_{STATES_COLLECTION}"],
            client=client,
        )

    def insert_blocks(self, blocks):
        """Store blocks in the history collection; an empty list stores nothing."""
        documents = [block_to_document(block) for block in blocks]
        if not documents:
            return
        self.history.insert_many(documents)

    def get_blocks(self):
        """Return every committed block in stored order."""
        return [block_from_document(document) for document in self.history.find({})]

    def insert_state(self, state):
        """Store a snapshot of the node's memory."""
        self.states.insert_one(state.to_document())

    def get_last_state(self):
        """Return the most recently stored snapshot, or None if there is none."""
        document = self.states.find_one({}, sort=[("$natural", -1)])
        if document is None:
            return None
        return State.from_document(document)