"""Node and controller configuration: defaults, YAML file and environment overrides."""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

import yaml

PREFIX = "apax_"

_log = logging.getLogger("apaxos.config")

_INT_PATTERN = re.compile(r"[+-]?\d+")
_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"", "0", "f", "F", "FALSE", "false", "False"}


@dataclass
class Pair:
    """A key-value pair read from the configuration file."""

    key: str = ""
    value: str = ""


@dataclass
class GrpcConfig:
    """Address of the node's gRPC server and its timeouts."""

    host: str = "127.0.0.1"
    port: int = 8080
    request_timeout: int = 10  # milliseconds
    majority_timeout: int = 10  # microseconds


@dataclass
class MongoConfig:
    """Connection string and database name of the MongoDB cluster."""

    uri: str = "your atlas connection string"
    database: str = ""


@dataclass
class Config:
    """System configuration of one node or of the controller."""

    node_id: str = "unique"
    client: str = "unique"
    majority: int = 0
    check_snapshots: bool = False
    workers_enabled: bool = False
    workers_interval: int = 10  # seconds
    log_level: str = "debug"
    nodes: list[Pair] = field(default_factory=list)
    clients: list[Pair] = field(default_factory=list)
    clients_shards: list[Pair] = field(default_factory=list)
    grpc: GrpcConfig = field(default_factory=GrpcConfig)
    mongodb: MongoConfig = field(default_factory=MongoConfig)

    def nodes_map(self):
        """Return node ids mapped to their addresses."""
        return {pair.key: pair.value for pair in self.nodes}

    def balances(self):
        """Return clients mapped to their initial balances; unparsable values count as 0."""
        return {pair.key: _atoi(pair.value) for pair in self.clients}

    def clients_map(self):
        """Return clients mapped to their raw configured values."""
        return {pair.key: pair.value for pair in self.clients}

    def client_shards(self):
        """Return clients mapped to the node that serves them."""
        return {pair.key: pair.value for pair in self.clients_shards}


def default_config():
    """Return the default configuration."""
    return Config()


def load_config(path, environ=None):
    """Load defaults, then the YAML file at ``path``, then ``apax_`` environment variables.

    A missing or unreadable file is logged and skipped. A value that cannot be
    converted to its field's type raises ValueError.
    """
    environ = os.environ if environ is None else environ

    data = dataclasses.asdict(default_config())
    _merge(data, _read_yaml(path))
    _merge(data, _environment_tree(environ))

    config = _build_config(data)
    _log.info(
        "\n\t================ Loaded Configuration ================\n\t%s\n"
        "\t=============================================",
        json.dumps(dataclasses.asdict(config), indent="\t"),
    )
    return config


def _atoi(text):
    text = str(text)
    return int(text) if _INT_PATTERN.fullmatch(text) else 0


def _read_yaml(path):
    try:
        with open(path, encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        _log.warning("error loading config.yml: %s", exc)
        return {}
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        _log.warning("error loading config.yml: top level is not a mapping")
        return {}
    return dict(loaded)


def _environment_tree(environ):
    tree = {}
    for name, value in environ.items():
        if not name.startswith(PREFIX):
            continue
        key = name[len(PREFIX):].lower().replace("__", ".")
        if not key:
            continue
        *parents, leaf = key.split(".")
        node = tree
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = value
    return tree


def _merge(target, source):
    for key, value in source.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge(current, value)
        else:
            target[key] = copy.deepcopy(value)


def _as_str(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _as_int(value, name):
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        if value == "":
            return 0
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ValueError(f"error unmarshalling config: cannot parse {name}={value!r} as int")


def _as_bool(value, name):
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
    raise ValueError(f"error unmarshalling config: cannot parse {name}={value!r} as bool")


def _as_pairs(value, name):
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"error unmarshalling config: {name} must be a list of pairs")
    pairs = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ValueError(f"error unmarshalling config: {name} holds a non-mapping item")
        pairs.append(Pair(key=_as_str(item.get("key")), value=_as_str(item.get("value"))))
    return pairs


def _section(data, name):
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"error unmarshalling config: {name} must be a mapping")
    return value


def _build_config(data):
    grpc_data = _section(data, "grpc")
    mongo_data = _section(data, "mongodb")
    return Config(
        node_id=_as_str(data.get("node_id")),
        client=_as_str(data.get("client")),
        majority=_as_int(data.get("majority"), "majority"),
        check_snapshots=_as_bool(data.get("check_snapshots"), "check_snapshots"),
        workers_enabled=_as_bool(data.get("workers_enabled"), "workers_enabled"),
        workers_interval=_as_int(data.get("workers_interval"), "workers_interval"),
        log_level=_as_str(data.get("log_level")),
        nodes=_as_pairs(data.get("nodes"), "nodes"),
        clients=_as_pairs(data.get("clients"), "clients"),
        clients_shards=_as_pairs(data.get("clients_shards"), "clients_shards"),
        grpc=GrpcConfig(
            host=_as_str(grpc_data.get("host")),
            port=_as_int(grpc_data.get("port"), "grpc.port"),
            request_timeout=_as_int(grpc_data.get("request_timeout"), "grpc.request_timeout"),
            majority_timeout=_as_int(grpc_data.get("majority_timeout"), "grpc.majority_timeout"),
        ),
        mongodb=MongoConfig(
            uri=_as_str(mongo_data.get("uri")),
            database=_as_str(mongo_data.get("database")),
        ),
    )