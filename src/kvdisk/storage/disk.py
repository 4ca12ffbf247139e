"""
Disk storage: the public face of the cache.

Every operation is queued on the storage's scheduler and returns a
``concurrent.futures.Future`` straight away. An optional callback receives
the same result as the future, on the worker thread, before the future
resolves. Async code can use the ``a``-prefixed variants instead.

Queued work only keeps a weak reference to the storage. If the storage is
garbage collected before a task runs, the task does no I/O and completes
with a detached Outcome (writes) or a miss (reads).
"""

from __future__ import annotations

import asyncio
import weakref
from concurrent.futures import Future
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from kvdisk.codec import Codec, JSONCodec
from kvdisk.config import Settings, StorageConfig, default_root, get_settings
from kvdisk.exceptions import (
    DeleteError,
    EnumerationError,
    KVDiskError,
    ReadError,
    WriteError,
)
from kvdisk.logging import get_logger, set_level
from kvdisk.storage.entries import EntryStore
from kvdisk.storage.eviction import EvictionPolicy
from kvdisk.storage.scanner import ExpiryScanner
from kvdisk.storage.scheduler import OperationScheduler
from kvdisk.types import (
    CacheEntry,
    EvictionOrder,
    Expiry,
    Lookup,
    Outcome,
    ProtectionLevel,
    SizeAccounting,
    utc_now,
)

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

OnDone = Callable[[Outcome], None]

_DETACHED = Outcome(detached=True)


class DiskStorage(Generic[T]):
    """File-per-key cache with expiry markers and a size budget.

    Example:
        storage = DiskStorage.create("images", max_size=50_000_000)
        storage.add("logo", b"...", expiry=Expiry.seconds(3600)).result()
        data = storage.get("logo").result()
    """

    def __init__(self, config: StorageConfig, codec: Codec[T] | None = None) -> None:
        self.config = config
        self.codec: Codec[T] = codec if codec is not None else JSONCodec()
        self._entries = EntryStore(config.root, self.codec, config.protection)
        self._scanner = ExpiryScanner(config.root, config.size_accounting)
        self._eviction = EvictionPolicy(config.eviction_order)
        self._scheduler = OperationScheduler(config.full_name, config.read_workers)
        logger.debug("Storage ready", path=str(config.root), max_size=config.max_size)

    @classmethod
    def create(
        cls,
        name: str,
        max_size: int = 0,
        root: str | Path | None = None,
        protection: ProtectionLevel = ProtectionLevel.NONE,
        codec: Codec[T] | None = None,
        eviction_order: EvictionOrder = EvictionOrder.NEWEST_FIRST,
        size_accounting: SizeAccounting = SizeAccounting.ALLOCATED,
        read_workers: int = 4,
    ) -> DiskStorage[T]:
        """Create a storage.

        Without ``root`` the storage lives in
        ``<user cache dir>/no.hyper.Cache.Disk.<Name>``.

        Raises:
            DirectoryUnavailableError: If ``root`` is omitted and the user
                cache directory cannot be resolved. Retry with an explicit root.
            ConfigurationError: If a parameter is out of range.
        """
        config = StorageConfig(
            name=name,
            root=Path(root) if root is not None else default_root(name),
            max_size=max_size,
            protection=protection,
            eviction_order=eviction_order,
            size_accounting=size_accounting,
            read_workers=read_workers,
        )
        return cls(config, codec)

    @classmethod
    def from_settings(
        cls,
        name: str,
        settings: Settings | None = None,
        root: str | Path | None = None,
        codec: Codec[T] | None = None,
    ) -> DiskStorage[T]:
        """Create a storage configured from environment Settings.

        ``LOG_LEVEL`` sets the threshold of the ``kvdisk`` logger; output
        handlers are left to the application.
        """
        settings = settings or get_settings()
        set_level(settings.LOG_LEVEL)
        config = StorageConfig.from_settings(
            name, settings, Path(root) if root is not None else None
        )
        return cls(config, codec)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def path(self) -> Path:
        return self.config.root

    @property
    def max_size(self) -> int:
        return self.config.max_size

    def file_path(self, key: str) -> Path:
        """Where the entry for ``key`` is (or would be) stored."""
        return self._entries.path(key)

    # Scheduling helpers

    def _write(
        self,
        operation: str,
        fn: Callable[[DiskStorage[T]], Outcome],
        on_done: OnDone | None,
        error_type: type[KVDiskError] = WriteError,
    ) -> Future[Outcome]:
        ref = weakref.ref(self)

        def task() -> Outcome:
            storage = ref()
            if storage is None:
                return _DETACHED
            try:
                return fn(storage)
            except OSError as e:
                error = error_type(
                    f"Unexpected failure during {operation}",
                    context={"path": str(storage.path), "error": str(e)},
                )
                logger.warning(error.message, kind=error.kind, **error.context)
                return Outcome(error=error)

        return self._scheduler.submit_write(operation, task, on_done)

    def _read(
        self,
        operation: str,
        key: str,
        project: Callable[[Lookup[T]], R],
        on_result: Callable[[R], None] | None,
    ) -> Future[R]:
        ref = weakref.ref(self)

        def task() -> R:
            storage = ref()
            if storage is None:
                return project(Lookup())
            try:
                lookup = storage._entries.lookup(key)
            except OSError as e:
                error = ReadError(
                    f"Unexpected failure during {operation}",
                    context={"path": str(storage.file_path(key)), "error": str(e)},
                )
                logger.warning(error.message, kind=error.kind, **error.context)
                lookup = Lookup(error=error)
            return project(lookup)

        return self._scheduler.submit_read(operation, task, on_result)

    # Operations

    def add(
        self,
        key: str,
        value: T,
        expiry: Expiry | None = None,
        on_done: OnDone | None = None,
    ) -> Future[Outcome]:
        """Store ``value`` under ``key``, overwriting any previous entry.

        ``expiry`` defaults to never.
        """
        expiry = expiry if expiry is not None else Expiry.never()
        return self._write("add", lambda s: s._entries.add(key, value, expiry), on_done)

    def lookup(
        self,
        key: str,
        on_result: Callable[[Lookup[T]], None] | None = None,
    ) -> Future[Lookup[T]]:
        """Read an entry, reporting why a miss happened if it was unexpected."""
        return self._read("lookup", key, lambda lookup: lookup, on_result)

    def cache_entry(
        self,
        key: str,
        on_result: Callable[[CacheEntry[T] | None], None] | None = None,
    ) -> Future[CacheEntry[T] | None]:
        """Read the value and expiry stored for ``key``, or None on a miss."""
        return self._read("cache_entry", key, lambda lookup: lookup.entry, on_result)

    def get(
        self,
        key: str,
        on_result: Callable[[T | None], None] | None = None,
    ) -> Future[T | None]:
        """Read the value stored for ``key``, or None on a miss.

        Expired entries that have not been swept are still returned.
        """
        return self._read("get", key, lambda lookup: lookup.value, on_result)

    def remove(self, key: str, on_done: OnDone | None = None) -> Future[Outcome]:
        """Delete the entry for ``key``; removing an absent key succeeds."""
        return self._write("remove", lambda s: s._entries.remove(key), on_done, DeleteError)

    def remove_if_expired(self, key: str, on_done: OnDone | None = None) -> Future[Outcome]:
        """Delete the entry for ``key`` if its expiry is at or before the time of the check."""
        path = self._entries.path(key)
        return self._write(
            "remove_if_expired",
            lambda s: s._entries.remove_path_if_expired(path),
            on_done,
            DeleteError,
        )

    def clear(self, on_done: OnDone | None = None) -> Future[Outcome]:
        """Delete the storage directory and everything in it."""
        return self._write("clear", lambda s: s._entries.clear(), on_done, DeleteError)

    def clear_expired(self, on_done: OnDone | None = None) -> Future[Outcome]:
        """Sweep expired entries, then evict live ones if over the size budget."""
        return self._write("clear_expired", lambda s: s._sweep(), on_done, DeleteError)

    def _sweep(self, now: datetime | None = None) -> Outcome:
        now = now or utc_now()
        try:
            scan = self._scanner.scan(now)
        except EnumerationError as e:
            logger.warning(e.message, kind=e.kind, **e.context)
            return Outcome(error=e)

        removed = 0
        first_error = None
        for scanned in scan.expired:
            deleted, error = self._entries.delete_file(scanned.path)
            if deleted:
                removed += 1
            else:
                first_error = first_error or error

        plan = self._eviction.plan(scan.live, scan.live_size, self.config.max_size)
        evicted = 0
        for victim in plan.victims:
            deleted, error = self._entries.delete_file(victim.path)
            if deleted:
                evicted += 1
            else:
                first_error = first_error or error

        if removed or evicted:
            logger.info(
                "Swept storage",
                expired=removed,
                evicted=evicted,
                size_before=plan.size_before,
                size_after=plan.size_after,
            )
        return Outcome(error=first_error, removed=removed + evicted, evicted=evicted)

    # Async variants

    async def aadd(self, key: str, value: T, expiry: Expiry | None = None) -> Outcome:
        return await asyncio.wrap_future(self.add(key, value, expiry))

    async def aget(self, key: str) -> T | None:
        return await asyncio.wrap_future(self.get(key))

    async def acache_entry(self, key: str) -> CacheEntry[T] | None:
        return await asyncio.wrap_future(self.cache_entry(key))

    async def alookup(self, key: str) -> Lookup[T]:
        return await asyncio.wrap_future(self.lookup(key))

    async def aremove(self, key: str) -> Outcome:
        return await asyncio.wrap_future(self.remove(key))

    async def aremove_if_expired(self, key: str) -> Outcome:
        return await asyncio.wrap_future(self.remove_if_expired(key))

    async def aclear(self) -> Outcome:
        return await asyncio.wrap_future(self.clear())

    async def aclear_expired(self) -> Outcome:
        return await asyncio.wrap_future(self.clear_expired())

    # Lifecycle

    def close(self, wait: bool = True) -> None:
        """Stop accepting operations; with ``wait`` let queued ones finish first."""
        self._scheduler.shutdown(wait=wait)

    def __enter__(self) -> DiskStorage[T]:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DiskStorage(name={self.name!r}, path={str(self.path)!r}, max_size={self.max_size})"
