"""
Storage engine.

- entries.py: EntryStore, single-entry file I/O
- scanner.py: ExpiryScanner, expired/live classification of a root
- eviction.py: EvictionPolicy, size-bounded victim selection
- scheduler.py: OperationScheduler, serial write lane and concurrent read lane
- disk.py: DiskStorage, the public API tying them together
"""

from kvdisk.storage.disk import DiskStorage
from kvdisk.storage.entries import EntryStore
from kvdisk.storage.eviction import EvictionPlan, EvictionPolicy
from kvdisk.storage.scanner import ExpiryScanner, ScannedFile, ScanResult
from kvdisk.storage.scheduler import OperationScheduler

__all__ = [
    "DiskStorage",
    "EntryStore",
    "EvictionPlan",
    "EvictionPolicy",
    "ExpiryScanner",
    "OperationScheduler",
    "ScannedFile",
    "ScanResult",
]
