"""Conversion between protocol messages and stored documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .messages import BallotNumber, Block, BlockMetaData, Transaction


def ballot_to_document(ballot):
    """Return a document for a ballot number; a missing ballot is stored as zero."""
    if ballot is None:
        return {"number": 0, "node_id": ""}
    return {"number": ballot.number, "node_id": ballot.node_id}


def ballot_from_document(document):
    document = document or {}
    return BallotNumber(
        number=int(document.get("number", 0)),
        node_id=document.get("node_id", ""),
    )


def transaction_to_document(transaction):
    # the stored field name keeps the historical spelling "reciever"
    return {
        "sender": transaction.sender,
        "reciever": transaction.receiver,
        "amount": transaction.amount,
        "sequence_number": transaction.sequence_number,
    }


def transaction_from_document(document):
    return Transaction(
        sender=document.get("sender", ""),
        receiver=document.get("reciever", ""),
        amount=int(document.get("amount", 0)),
        sequence_number=int(document.get("sequence_number", 0)),
    )


def block_to_document(block):
    metadata = block.metadata or BlockMetaData()
    return {
        "metadata": {
            "node_id": metadata.node_id,
            "ballot_number": ballot_to_document(metadata.ballot_number),
        },
        "transactions": [transaction_to_document(t) for t in block.transactions],
    }


def block_from_document(document):
    document = document or {}
    metadata = document.get("metadata") or {}
    return Block(
        metadata=BlockMetaData(
            node_id=metadata.get("node_id", ""),
            ballot_number=ballot_from_document(metadata.get("ballot_number")),
        ),
        transactions=[transaction_from_document(t) for t in document.get("transactions") or []],
    )


@dataclass
class State:
    """A snapshot of a node's memory."""

    clients: dict[str, int] = field(default_factory=dict)
    last_committed_message: BallotNumber = field(default_factory=BallotNumber)
    ballot_number: BallotNumber = field(default_factory=BallotNumber)
    accepted_num: Optional[BallotNumber] = field(default_factory=BallotNumber)
    datastore: Block = field(default_factory=Block)
    accepted_val: list[Block] = field(default_factory=list)

    def to_document(self):
        return {
            "clients": dict(self.clients),
            "last_committed_message": ballot_to_document(self.last_committed_message),
            "ballot_number": ballot_to_document(self.ballot_number),
            "accepted_num": ballot_to_document(self.accepted_num),
            "datastore": block_to_document(self.datastore),
            "accepted_val": [block_to_document(b) for b in self.accepted_val],
        }

    @classmethod
    def from_document(cls, document):
        return cls(
            clients={k: int(v) for k, v in (document.get("clients") or {}).items()},
            last_committed_message=ballot_from_document(document.get("last_committed_message")),
            ballot_number=ballot_from_document(document.get("ballot_number")),
            accepted_num=ballot_from_document(document.get("accepted_num")),
            datastore=block_from_document(document.get("datastore")),
            accepted_val=[block_from_document(b) for b in document.get("accepted_val") or []],
        )