"""twinsync - bidirectional synchronisation of two local directory trees."""

__version__ = "0.1.0"
