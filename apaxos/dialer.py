"""gRPC client calls to the apaxos, liveness and transactions services."""

from __future__ import annotations

import contextlib
import functools
import logging
import random

import grpc

from .messages import Block, PerformanceResponse, decode, encode

APAXOS_SERVICE = "apaxos.Apaxos"
LIVENESS_SERVICE = "liveness.Liveness"
TRANSACTIONS_SERVICE = "transactions.Transactions"


def method_path(service, method):
    """Return the full gRPC method path for a service method."""
    return f"/{service}/{method}"


class DialError(Exception):
    """A remote call could not be made or returned an error."""


def _describe(exc):
    code = getattr(exc, "code", None)
    details = getattr(exc, "details", None)
    if callable(code) and callable(details):
        status = code()
        name = status.name if status is not None else "Unknown"
        return f"rpc error: code = {name} desc = {details()}"
    return str(exc)


class Dialer:
    """Makes RPC calls to other nodes; one connection per call."""

    def __init__(self, logger=None):
        base = logger or logging.getLogger("apaxos.dialer")
        self._apaxos_log = base.getChild("apaxos")
        self._liveness_log = base.getChild("liveness")
        self._transactions_log = base.getChild("transactions")

    @contextlib.contextmanager
    def _connect(self, address, component):
        try:
            channel = grpc.insecure_channel(address)
        except (ValueError, TypeError, RuntimeError) as exc:
            raise DialError(
                f"[grpc/client/{component}] failed to open connection to {address}: {exc}"
            ) from exc
        try:
            yield channel
        finally:
            channel.close()

    @staticmethod
    def _unary(channel, service, method, request, response_type=dict):
        call = channel.unary_unary(
            method_path(service, method),
            request_serializer=encode,
            response_deserializer=functools.partial(decode, response_type),
        )
        return call(request)

    @staticmethod
    def _stream(channel, service, method, request, response_type):
        call = channel.unary_stream(
            method_path(service, method),
            request_serializer=encode,
            response_deserializer=functools.partial(decode, response_type),
        )
        return call(request)

    # apaxos protocol calls: failures are logged and swallowed

    def _notify(self, address, method, message, label):
        try:
            with self._connect(address, "apaxosDialer") as channel:
                try:
                    self._unary(channel, APAXOS_SERVICE, method, message)
                except grpc.RpcError as exc:
                    self._apaxos_log.debug(
                        "failed to call %s rpc address=%s error=%s", label, address, _describe(exc)
                    )
        except DialError as exc:
            self._apaxos_log.debug("failed to connect address=%s error=%s", address, exc)

    def propose(self, address, message):
        """Send a prepare message."""
        self._notify(address, "Propose", message, "propose")

    def promise(self, address, message):
        """Send a promise message."""
        self._notify(address, "Promise", message, "promise")

    def accept(self, address, message):
        """Send an accept message."""
        self._notify(address, "Accept", message, "accept")

    def accepted(self, address):
        """Tell the proposer its accept message was accepted."""
        self._notify(address, "Accepted", None, "accepted")

    def commit(self, address):
        """Tell a node to commit its accepted value."""
        self._notify(address, "Commit", None, "commit")

    def sync(self, address, message):
        """Send a sync message."""
        self._notify(address, "Sync", message, "sync")

    # liveness calls

    def ping(self, address):
        """Return True if the node answers and is not blocked."""
        try:
            with self._connect(address, "livenessDialer") as channel:
                try:
                    response = self._unary(
                        channel,
                        LIVENESS_SERVICE,
                        "Ping",
                        {"random": random.randrange(0, 2**63)},
                    )
                except grpc.RpcError as exc:
                    self._liveness_log.debug(
                        "failed to call ping RPC address=%s error=%s", address, _describe(exc)
                    )
                    return False
        except DialError as exc:
            self._liveness_log.debug("failed to connect address=%s error=%s", address, exc)
            return False
        return response.get("random", 0) != -1

    def change_state(self, address, state):
        """Set a node's service status; raise DialError if it did not change."""
        try:
            with self._connect(address, "livenessDialer") as channel:
                try:
                    response = self._unary(
                        channel, LIVENESS_SERVICE, "ChangeStatus", {"status": bool(state)}
                    )
                except grpc.RpcError as exc:
                    raise DialError(
                        f"failed to change server {address} status: {_describe(exc)}"
                    ) from exc
        except DialError as exc:
            if exc.__cause__ is None or isinstance(exc.__cause__, grpc.RpcError):
                raise
            raise DialError(f"failed to call {address}: {exc}") from exc

        current = bool(response.get("status", False))
        if current != bool(state):
            raise DialError(
                f"server status is not changed to {str(bool(state)).lower()}, "
                f"it is {str(current).lower()}"
            )

    # transactions calls

    def new_transaction(self, address, transaction):
        """Submit a transaction and return the node's reply text."""
        with self._connect(address, "transactionsDialer") as channel:
            try:
                response = self._unary(
                    channel, TRANSACTIONS_SERVICE, "NewTransaction", transaction
                )
            except grpc.RpcError as exc:
                raise DialError(f"failed transaction: {_describe(exc)}") from exc
        return str(response.get("text", ""))

    def print_balance(self, address, client):
        """Return a client's balance as held by the node."""
        with self._connect(address, "transactionsDialer") as channel:
            try:
                response = self._unary(
                    channel, TRANSACTIONS_SERVICE, "PrintBalance", {"client": client}
                )
            except grpc.RpcError as exc:
                raise DialError(f"failed to process printBalance: {_describe(exc)}") from exc
        return int(response.get("balance", 0))

    def _collect(self, address, method, open_label, receive_label):
        blocks = []
        with self._connect(address, "transactionsDialer") as channel:
            try:
                for block in self._stream(channel, TRANSACTIONS_SERVICE, method, None, Block):
                    blocks.append(block)
            except grpc.RpcError as exc:
                label = receive_label if blocks else open_label
                raise DialError(f"{label}: {_describe(exc)}") from exc
        return blocks

    def print_logs(self, address):
        """Return the node's datastore block followed by its accepted blocks."""
        return self._collect(
            address, "PrintLogs", "failed to process printLogs", "failed to receive blocks"
        )

    def print_db(self, address):
        """Return the blocks the node has committed to its database."""
        return self._collect(
            address, "PrintDB", "failed to process printDB", "failed to receive log"
        )

    def performance(self, address):
        """Return the node's throughput and latency."""
        with self._connect(address, "transactionsDialer") as channel:
            try:
                return self._unary(
                    channel, TRANSACTIONS_SERVICE, "Performance", None, PerformanceResponse
                )
            except grpc.RpcError as exc:
                raise DialError(f"failed to process performance: {_describe(exc)}") from exc