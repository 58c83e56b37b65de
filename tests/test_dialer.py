import functools
import logging
from concurrent.futures import ThreadPoolExecutor

import grpc
import pytest

from apaxos.dialer import (
    APAXOS_SERVICE,
    LIVENESS_SERVICE,
    TRANSACTIONS_SERVICE,
    DialError,
    Dialer,
    method_path,
)
from apaxos.messages import (
    AcceptMessage,
    BallotNumber,
    Block,
    BlockMetaData,
    ClientBalancePair,
    PerformanceResponse,
    PrepareMessage,
    PromiseMessage,
    SyncMessage,
    Transaction,
    decode,
    encode,
)

UNREACHABLE = "127.0.0.1:1"


class FakeNode:
    def __init__(self):
        self.calls = []
        self.ping_reply = None
        self.status_reply = None
        self.fail = False
        self.balances = {}
        self.logs = []
        self.db = []
        self.perf = PerformanceResponse()
        self.address = ""

    def _record(self, name, request, context):
        self.calls.append((name, request))
        return {}

    def _ping(self, request, context):
        reply = request["random"] if self.ping_reply is None else self.ping_reply
        return {"random": reply}

    def _change(self, request, context):
        status = request["status"] if self.status_reply is None else self.status_reply
        return {"status": status}

    def _new_transaction(self, request, context):
        if self.fail:
            context.abort(grpc.StatusCode.INTERNAL, "service is not responding")
        self.calls.append(("NewTransaction", request))
        return {"text": "transaction submitted"}

    def _balance(self, request, context):
        return {"balance": self.balances.get(request["client"], 0)}

    def _logs(self, request, context):
        yield from self.logs

    def _db(self, request, context):
        if self.fail:
            context.abort(grpc.StatusCode.INTERNAL, "database down")
        yield from self.db

    def _performance(self, request, context):
        return self.perf

    def handlers(self):
        def unary(fn, request_type=dict):
            return grpc.unary_unary_rpc_method_handler(
                fn,
                request_deserializer=functools.partial(decode, request_type),
                response_serializer=encode,
            )

        def stream(fn):
            return grpc.unary_stream_rpc_method_handler(
                fn,
                request_deserializer=functools.partial(decode, dict),
                response_serializer=encode,
            )

        def rec(name):
            return functools.partial(self._record, name)

        apaxos = grpc.method_handlers_generic_handler(
            APAXOS_SERVICE,
            {
                "Propose": unary(rec("Propose"), PrepareMessage),
                "Promise": unary(rec("Promise"), PromiseMessage),
                "Accept": unary(rec("Accept"), AcceptMessage),
                "Accepted": unary(rec("Accepted")),
                "Commit": unary(rec("Commit")),
                "Sync": unary(rec("Sync"), SyncMessage),
            },
        )
        liveness = grpc.method_handlers_generic_handler(
            LIVENESS_SERVICE,
            {"Ping": unary(self._ping), "ChangeStatus": unary(self._change)},
        )
        transactions = grpc.method_handlers_generic_handler(
            TRANSACTIONS_SERVICE,
            {
                "NewTransaction": unary(self._new_transaction, Transaction),
                "PrintBalance": unary(self._balance),
                "PrintLogs": stream(self._logs),
                "PrintDB": stream(self._db),
                "Performance": unary(self._performance),
            },
        )
        return (apaxos, liveness, transactions)


@pytest.fixture
def node():
    fake = FakeNode()
    server = grpc.server(ThreadPoolExecutor(max_workers=4))
    server.add_generic_rpc_handlers(fake.handlers())
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    fake.address = f"127.0.0.1:{port}"
    yield fake
    server.stop(None)


@pytest.fixture
def dialer():
    return Dialer(logging.getLogger("test.dialer"))


def _block(node_id, number, *transactions):
    return Block(
        metadata=BlockMetaData(node_id=node_id, ballot_number=BallotNumber(number, node_id)),
        transactions=list(transactions),
    )


def test_method_path_format():
    assert method_path(LIVENESS_SERVICE, "Ping") == "/liveness.Liveness/Ping"


def test_ping_alive(node, dialer):
    assert dialer.ping(node.address) is True


def test_ping_blocked(node, dialer):
    node.ping_reply = -1
    assert dialer.ping(node.address) is False


def test_ping_unreachable(dialer):
    assert dialer.ping(UNREACHABLE) is False


def test_change_state_success(node, dialer):
    assert dialer.change_state(node.address, False) is None


def test_change_state_mismatch(node, dialer):
    node.status_reply = True
    with pytest.raises(DialError, match="server status is not changed to false, it is true"):
        dialer.change_state(node.address, False)


def test_change_state_unreachable(dialer):
    with pytest.raises(DialError, match="failed to change server"):
        dialer.change_state(UNREACHABLE, True)


def test_new_transaction(node, dialer):
    transaction = Transaction(sender="A", receiver="B", amount=4)
    assert dialer.new_transaction(node.address, transaction) == "transaction submitted"
    assert node.calls == [("NewTransaction", transaction)]


def test_new_transaction_error(node, dialer):
    node.fail = True
    with pytest.raises(DialError, match="failed transaction.*service is not responding"):
        dialer.new_transaction(node.address, Transaction(sender="A", receiver="B", amount=1))


def test_print_balance(node, dialer):
    node.balances = {"A": 75}
    assert dialer.print_balance(node.address, "A") == 75
    assert dialer.print_balance(node.address, "Z") == 0


def test_print_balance_unreachable(dialer):
    with pytest.raises(DialError, match="failed to process printBalance"):
        dialer.print_balance(UNREACHABLE, "A")


def test_print_logs_round_trip(node, dialer):
    node.logs = [
        _block("S1", 2, Transaction("A", "B", 3, 11)),
        _block("S2", 1),
    ]
    assert dialer.print_logs(node.address) == node.logs


def test_print_db_round_trip(node, dialer):
    node.db = [_block("S3", 5, Transaction("C", "D", 8, 21), Transaction("C", "E", 1, 22))]
    assert dialer.print_db(node.address) == node.db


def test_print_db_error(node, dialer):
    node.fail = True
    with pytest.raises(DialError, match="failed to process printDB"):
        dialer.print_db(node.address)


def test_performance(node, dialer):
    node.perf = PerformanceResponse(throughput=12.5, latency=800.0)
    assert dialer.performance(node.address) == node.perf


def test_protocol_messages_delivered(node, dialer):
    ballot = BallotNumber(3, "S1")
    prepare = PrepareMessage(node_id="S1", ballot_number=ballot, last_committed_message=BallotNumber())
    promise = PromiseMessage(node_id="S2", ballot_number=ballot, blocks=[_block("S2", 3)])
    accept = AcceptMessage(node_id="S1", ballot_number=ballot, blocks=[_block("S2", 3)])
    sync = SyncMessage(last_committed_message=ballot, pairs=[ClientBalancePair("A", 9)])

    dialer.propose(node.address, prepare)
    dialer.promise(node.address, promise)
    dialer.accept(node.address, accept)
    dialer.accepted(node.address)
    dialer.commit(node.address)
    dialer.sync(node.address, sync)

    assert node.calls == [
        ("Propose", prepare),
        ("Promise", promise),
        ("Accept", accept),
        ("Accepted", {}),
        ("Commit", {}),
        ("Sync", sync),
    ]


def test_protocol_failure_is_logged(dialer, caplog):
    with caplog.at_level(logging.DEBUG, logger="test.dialer"):
        result = dialer.propose(UNREACHABLE, PrepareMessage(node_id="S1"))
    assert result is None
    assert "failed to call propose rpc" in caplog.text