"""Background jobs of a node, such as periodic state snapshots."""

from __future__ import annotations

import copy
import logging
import threading

from .messages import BallotNumber, Block
from .models import State


def snapshot_state(memory):
    """Return a copy of the node's memory as a State; missing ballots become zero."""

    def ballot(value):
        return copy.deepcopy(value) if value is not None else BallotNumber()

    return State(
        clients=dict(memory.clients),
        last_committed_message=ballot(memory.last_committed_message),
        ballot_number=ballot(memory.ballot_number),
        accepted_num=ballot(memory.accepted_num),
        datastore=copy.deepcopy(memory.datastore) if memory.datastore is not None else Block(),
        accepted_val=copy.deepcopy(list(memory.accepted_val or [])),
    )


class Worker:
    """Stores a snapshot of the node's memory every ``interval`` seconds."""

    def __init__(self, memory, database, interval, logger=None):
        self.memory = memory
        self.database = database
        self.interval = interval
        self.logger = logger or logging.getLogger("apaxos.worker")

    def snapshot(self):
        """Store the current memory state in the database."""
        self.database.insert_state(snapshot_state(self.memory))

    def start(self, enabled, stop_event=None):
        """Run snapshots until ``stop_event`` is set; return at once when disabled."""
        if not enabled:
            return
        stop_event = stop_event or threading.Event()
        self.logger.info("worker process started. interval=%s", self.interval)
        while not stop_event.wait(self.interval):
            try:
                self.snapshot()
            except Exception as exc:  # a failed backup must not stop the worker
                self.logger.info("backup worker failed error=%s", exc)