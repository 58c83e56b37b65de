import pytest

from apaxos.messages import BallotNumber, BlockMetaData
from apaxos.ordering import compare_ballot_numbers, compare_blocks


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (BallotNumber(3, "1"), BallotNumber(2, "1"), 1),
        (BallotNumber(2, "1"), BallotNumber(3, "1"), -1),
        (BallotNumber(2, "2"), BallotNumber(2, "1"), 1),
        (BallotNumber(2, "1"), BallotNumber(2, "2"), -1),
        (BallotNumber(2, "S1"), BallotNumber(2, "S1"), 0),
    ],
    ids=[
        "a.number > b.number",
        "a.number < b.number",
        "equal numbers, a.node_id > b.node_id",
        "equal numbers, a.node_id < b.node_id",
        "equal",
    ],
)
def test_compare_ballot_numbers(a, b, expected):
    assert compare_ballot_numbers(a, b) == expected


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (BallotNumber(2, "1"), BallotNumber(1, "1"), False),
        (BallotNumber(1, "2"), BallotNumber(1, "1"), False),
        (BallotNumber(1, "1"), BallotNumber(1, "1"), True),
        (BallotNumber(1, "1"), BallotNumber(2, "1"), True),
        (BallotNumber(1, "1"), BallotNumber(1, "2"), True),
    ],
    ids=[
        "higher number in a",
        "higher node id in a",
        "same ballot",
        "lower number in a",
        "lower node id in a",
    ],
)
def test_compare_blocks(a, b, expected):
    assert compare_blocks(BlockMetaData(ballot_number=a), BlockMetaData(ballot_number=b)) is expected


def test_missing_ballot_counts_as_zero():
    assert compare_ballot_numbers(None, BallotNumber(0, "")) == 0
    assert compare_ballot_numbers(None, BallotNumber(1, "S1")) == -1


def test_compare_is_antisymmetric():
    a, b = BallotNumber(5, "S2"), BallotNumber(5, "S3")
    assert compare_ballot_numbers(a, b) == -compare_ballot_numbers(b, a)


def test_sorting_blocks_descending():
    metas = [BlockMetaData(ballot_number=BallotNumber(n, "S1")) for n in (2, 5, 1)]
    ordered = sorted(metas, key=lambda m: m.ballot_number.number, reverse=True)
    for first, second in zip(ordered, ordered[1:]):
        assert compare_blocks(second, first)