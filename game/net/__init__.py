"""
Replication helpers (authority -> observer snapshots).
"""
from .wire import WireReader, WireWriter
