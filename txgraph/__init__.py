"""txgraph: relationship analytics over a graph of users and transactions."""

__version__ = "0.1.0"
