"""Console helpers that call nodes over RPC and print what they return."""

from __future__ import annotations

import math
import sys

from .dialer import DialError
from .messages import Transaction


def _format_float(value):
    return "NaN" if math.isnan(value) else f"{value:f}"


def format_blocks(blocks):
    """Render blocks as ballot-number headers followed by numbered transactions."""
    parts = []
    for block in blocks:
        ballot = block.metadata.ballot_number if block.metadata is not None else None
        number = ballot.number if ballot is not None else 0
        node_id = ballot.node_id if ballot is not None else ""
        parts.append(f"\nballot-number: <{number} - {node_id}>\n")
        parts.append("transactions:\n")
        for transaction in block.transactions:
            parts.append(
                f"{transaction.sequence_number}. "
                f"({transaction.sender}, {transaction.receiver}, {transaction.amount})\n"
            )
    return "".join(parts)


class ConsoleClient:
    """Makes RPC calls to nodes and prints the results for an operator."""

    def __init__(self, dialer, out=None):
        self.dialer = dialer
        self._out = out

    def _print(self, *args, end="\n"):
        print(*args, end=end, file=self._out if self._out is not None else sys.stdout)

    def update_server_status(self, address, status):
        """Block or unblock a node; raises DialError when the change fails."""
        self.dialer.change_state(address, status)

    def print_balance(self, client, address):
        """Print and return a client's balance held by the node at ``address``."""
        balance = self.dialer.print_balance(address, client)
        self._print(balance)
        return balance

    def print_logs(self, address):
        """Print the datastore and accepted blocks of a node."""
        blocks = self.dialer.print_logs(address)
        self._print(format_blocks(blocks), end="")
        return blocks

    def print_db(self, address):
        """Print the committed blocks stored by a node."""
        blocks = self.dialer.print_db(address)
        self._print(format_blocks(blocks), end="")
        return blocks

    def performance(self, addresses):
        """Print and return the average (throughput, latency) over responding nodes."""
        latency = 0.0
        throughput = 0.0
        count = 0
        for key, address in addresses.items():
            try:
                response = self.dialer.performance(address)
            except DialError as exc:
                self._print(f"no response from {key}: {exc}")
                continue
            count += 1
            latency += response.latency
            throughput += response.throughput

        if count:
            avg_throughput, avg_latency = throughput / count, latency / count
        else:
            avg_throughput = avg_latency = float("nan")

        self._print(
            f"{_format_float(avg_throughput)}  TPS ,  "
            f"{_format_float(avg_latency)}  micro-seconds"
        )
        return avg_throughput, avg_latency

    def aggregated_balance(self, client, addresses):
        """Print a client's balance on every node that answers."""
        balances = {}
        for key, address in addresses.items():
            try:
                balance = self.dialer.print_balance(address, client)
            except DialError:
                continue
            balances[key] = balance
            self._print(f"{key}: {balance}")
        return balances

    def transaction(self, sender, receiver, amount, address):
        """Submit a transaction to a node and print its reply or error."""
        transaction = Transaction(sender=sender, receiver=receiver, amount=int(amount))
        self._print(
            f"sending ({transaction.sender}, {transaction.receiver}, "
            f"{transaction.amount}) to {address}"
        )
        try:
            text = self.dialer.new_transaction(address, transaction)
        except DialError as exc:
            self._print(f"{address} returned with an error: {exc}")
            return None
        self._print(text)
        return text