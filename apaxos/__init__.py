"""Node state, messages, configuration, RPC dialer, operator console and storage for a Paxos-based transaction system."""

__version__ = "0.1.0"