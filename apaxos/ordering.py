"""Ordering of ballot numbers and blocks."""

from .messages import BallotNumber

_ZERO = BallotNumber()


def compare_ballot_numbers(a, b) -> int:
    """Return 1 if a > b, -1 if a < b and 0 if they are equal.

    Numbers are compared first, then node ids; a missing ballot counts as zero.
    """
    a = a or _ZERO
    b = b or _ZERO
    if a.number != b.number:
        return 1 if a.number > b.number else -1
    if a.node_id > b.node_id:
        return 1
    if a.node_id < b.node_id:
        return -1
    return 0


def compare_blocks(a, b) -> bool:
    """Return True when block metadata a orders at or before b."""
    ballot_a = a.ballot_number if a is not None else None
    ballot_b = b.ballot_number if b is not None else None
    return compare_ballot_numbers(ballot_a, ballot_b) <= 0