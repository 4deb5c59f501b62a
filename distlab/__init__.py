"""Simulated RPC network, value encoding, key/value test helpers, linearizability model and sequential MapReduce."""

__version__ = "0.1.0"