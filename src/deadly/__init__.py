# ABOUTME: deadly - local sync, search, and library engine for a live-music archive.
# ABOUTME: Subpackages: archive (dataset I/O), db (storage), core (pipeline and services), cli.

__version__ = "0.1.0"
