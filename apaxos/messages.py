"""Protocol messages, internal packets and their JSON wire encoding."""

import dataclasses
import enum
import json
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional


class PacketType(enum.IntEnum):
    """Kinds of packets passed from the RPC layer to a protocol instance."""

    PROMISE = 1
    ACCEPTED = 2
    SYNC = 3
    COMMIT = 4


@dataclass
class Packet:
    """An internal message between the RPC handlers and consensus."""

    type: Optional[PacketType] = None
    payload: Any = None


@dataclass
class BallotNumber:
    number: int = 0
    node_id: str = ""


@dataclass
class Transaction:
    sender: str = ""
    receiver: str = ""
    amount: int = 0
    sequence_number: int = 0


@dataclass
class BlockMetaData:
    node_id: str = ""
    ballot_number: Optional[BallotNumber] = None


@dataclass
class Block:
    metadata: BlockMetaData = field(default_factory=BlockMetaData)
    transactions: list[Transaction] = field(default_factory=list)


@dataclass
class PrepareMessage:
    node_id: str = ""
    ballot_number: Optional[BallotNumber] = None
    last_committed_message: Optional[BallotNumber] = None


@dataclass
class PromiseMessage:
    node_id: str = ""
    ballot_number: Optional[BallotNumber] = None
    last_committed_message: Optional[BallotNumber] = None
    blocks: list[Block] = field(default_factory=list)


@dataclass
class AcceptMessage:
    node_id: str = ""
    ballot_number: Optional[BallotNumber] = None
    blocks: list[Block] = field(default_factory=list)


@dataclass
class ClientBalancePair:
    client: str = ""
    balance: int = 0


@dataclass
class SyncMessage:
    last_committed_message: Optional[BallotNumber] = None
    pairs: list[ClientBalancePair] = field(default_factory=list)


@dataclass
class PerformanceResponse:
    throughput: float = 0.0
    latency: float = 0.0


def encode(message) -> bytes:
    """Serialize a message dataclass, a mapping or None to JSON bytes."""
    if message is None:
        payload = {}
    elif dataclasses.is_dataclass(message) and not isinstance(message, type):
        payload = dataclasses.asdict(message)
    elif isinstance(message, Mapping):
        payload = dict(message)
    else:
        raise TypeError(f"cannot encode {type(message).__name__}")
    return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")


def decode(cls, data):
    """Build an instance of ``cls`` (or a plain dict) from JSON bytes."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    raw = json.loads(data) if data else {}
    if not isinstance(raw, dict):
        raise ValueError("message payload must be a JSON object")
    if cls is dict:
        return raw
    return _build(cls, raw)


def _build(cls, raw: dict):
    kwargs = {
        f.name: _convert(f.type, raw[f.name])
        for f in dataclasses.fields(cls)
        if f.name in raw
    }
    return cls(**kwargs)


def _convert(tp, value):
    if value is None or tp is Any:
        return value
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        inner = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        return _convert(inner[0], value) if inner else value
    if origin is list:
        (item_type,) = typing.get_args(tp)
        return [_convert(item_type, item) for item in value]
    if origin is dict:
        _, value_type = typing.get_args(tp)
        return {key: _convert(value_type, item) for key, item in value.items()}
    if dataclasses.is_dataclass(tp):
        if not isinstance(value, dict):
            raise ValueError(f"expected an object for {tp.__name__}")
        return _build(tp, value)
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return tp(value)
    if tp is float:
        return float(value)
    return value