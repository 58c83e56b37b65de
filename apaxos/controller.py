"""Interactive controller that drives the cluster from typed commands and CSV test sets."""

from __future__ import annotations

import csv
import re
import sys
from dataclasses import dataclass, field

from .client import ConsoleClient
from .dialer import DialError, Dialer

INVALID_COMMAND = "command not found"
END_OF_SETS = "no test-set available"

_INT_PATTERN = re.compile(r"[+-]?\d+")

HELP_TEXT = """
exit: close the controller app
help | prints help instructions

tests  <csv path> | loads a csv test file
next | runs the next test-set

reset | reset all servers status to active
block <node> | get a node out of access
unblock <node> | restore a single node 
ping <node> | send a ping message to a node

printbalance <client> | print the balance of a client (based on shards)
printlogs <node> | print logs of a node
printdb <node> | print database of a node
performance | gets performance of all nodes
aggrigated <client> | gets a clients balance in all servers
transaction <sender> <receiver> <amount> | make a transaction for a client"""


class ControllerError(Exception):
    """A controller command could not be carried out."""


@dataclass
class TestSet:
    """One block of a test file: active servers and the transactions to submit."""

    __test__ = False

    index: str
    servers: list[str] = field(default_factory=list)
    transactions: list[dict] = field(default_factory=list)


def _atoi(text):
    return int(text) if _INT_PATTERN.fullmatch(text) else 0


def _build_set(index, server_list, raw_transactions, client_shards):
    servers = [name.strip().upper() for name in server_list.split(", ")]
    transactions = []
    for raw in raw_transactions:
        parts = [part.strip().upper() for part in raw.split(", ")]
        if len(parts) < 3:
            raise ValueError(f"malformed transaction in set {index}: {raw!r}")
        sender, receiver = parts[0], parts[1]
        transactions.append(
            {
                "sender": sender,
                "receiver": receiver,
                "amount": _atoi(parts[2]),
                "address": client_shards.get(sender, ""),
            }
        )
    return TestSet(index=index, servers=servers, transactions=transactions)


def load_test_sets(path, client_shards):
    """Read a CSV test file into test sets.

    A row with a value in its first column starts a new set; following rows
    with an empty first column add transactions to it.
    """
    sets = []
    current_index = ""
    current_list = ""
    current_transactions = []

    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        while True:
            try:
                record = next(reader)
            except (StopIteration, csv.Error):
                break
            if not record:
                continue

            if record[0] != "":
                if current_index != "":
                    sets.append(
                        _build_set(current_index, current_list, current_transactions, client_shards)
                    )
                current_index = record[0]
                current_transactions = []
                current_list = ""
                if len(record) > 2:
                    current_list = record[2].strip("[]")
                if len(record) > 1:
                    current_transactions.append(record[1].strip("()"))
            elif len(record) > 1 and record[1] != "":
                current_transactions.append(record[1].strip("()"))

    sets.append(_build_set(current_index, current_list, current_transactions, client_shards))
    return sets


class Controller:
    """Reads operator commands and turns them into RPC calls on the nodes."""

    def __init__(self, config, client=None, out=None, logger=None):
        self.config = config
        self.client = client if client is not None else ConsoleClient(Dialer(logger), out=out)
        self._out = out
        self.test_sets = []
        self.current_test = 0

    def _print(self, *args, end="\n"):
        print(*args, end=end, file=self._out if self._out is not None else sys.stdout, flush=True)

    def run(self, lines):
        """Prompt for and handle commands until ``exit`` or the input ends."""
        iterator = iter(lines)
        while True:
            self._print("$ ", end="")
            try:
                line = next(iterator)
            except StopIteration:
                return
            line = line.strip()
            if not line:
                continue
            try:
                if not self.handle(line):
                    return
            except (ControllerError, DialError, OSError, ValueError) as exc:
                self._print(str(exc))

    @staticmethod
    def _arg(parts, position):
        if len(parts) <= position:
            raise ControllerError(f"missing argument for {parts[0]}")
        return parts[position]

    def handle(self, line):
        """Run one command; return False when the controller should stop."""
        parts = line.split(" ")
        command = parts[0]
        nodes = self.config.nodes_map()
        shards = self.config.client_shards()

        if command == "exit":
            return False
        if command == "help":
            self._print(HELP_TEXT)
        elif command == "tests":
            path = self._arg(parts, 1)
            self.test_sets = []
            self.test_sets = load_test_sets(path, shards)
            self._print(f"file {path}, loading {len(self.test_sets)} sets.")
        elif command == "next":
            if self.current_test >= len(self.test_sets):
                raise ControllerError(END_OF_SETS)
            self.exec_set(self.test_sets[self.current_test])
            self.current_test += 1
        elif command == "ping":
            alive = self.client.dialer.ping(nodes.get(self._arg(parts, 1), ""))
            self._print("true" if alive else "false")
        elif command == "reset":
            self.reset_servers()
        elif command == "block":
            self.client.update_server_status(nodes.get(self._arg(parts, 1), ""), False)
        elif command == "unblock":
            self.client.update_server_status(nodes.get(self._arg(parts, 1), ""), True)
        elif command == "printbalance":
            client = self._arg(parts, 1)
            self.client.print_balance(client, nodes.get(shards.get(client, ""), ""))
        elif command == "printlogs":
            self.client.print_logs(nodes.get(self._arg(parts, 1), ""))
        elif command == "printdb":
            self.client.print_db(nodes.get(self._arg(parts, 1), ""))
        elif command == "performance":
            self.client.performance(nodes)
        elif command == "aggrigated":
            self.client.aggregated_balance(self._arg(parts, 1), nodes)
        elif command == "transaction":
            sender = self._arg(parts, 1)
            receiver = self._arg(parts, 2)
            amount = _atoi(self._arg(parts, 3))
            self.client.transaction(
                sender, receiver, amount, nodes.get(shards.get(sender, ""), "")
            )
        else:
            raise ControllerError(INVALID_COMMAND)
        return True

    def exec_set(self, test_set):
        """Block the servers outside the set, submit its transactions, then unblock all."""
        self._print(f"starting set: {test_set.index}")
        self.reset_servers()

        active = set()
        for server in test_set.servers:
            self._print(f"active server: {server}")
            active.add(server)

        nodes = self.config.nodes_map()
        for key, address in nodes.items():
            if key not in active:
                self._print(f"blocking server: {key}")
                try:
                    self.client.update_server_status(address, False)
                except DialError:
                    pass

        for entry in test_set.transactions:
            self.client.transaction(
                entry["sender"],
                entry["receiver"],
                entry["amount"],
                nodes.get(entry["address"], ""),
            )

        self.reset_servers()

    def reset_servers(self):
        """Unblock every node, printing the errors of those that fail."""
        for address in self.config.nodes_map().values():
            try:
                self.client.update_server_status(address, True)
            except DialError as exc:
                self._print(str(exc))