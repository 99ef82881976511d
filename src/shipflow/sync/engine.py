"""
Directory <-> object storage sync engine.

Both directions run the same two passes:

1. Statistics pass: enumerate every leaf under the source and total the file
   count and byte size, so progress percentages are meaningful from the first
   report.
2. Transfer pass: a fixed pool of ``max_concurrency`` workers drains one shared
   worklist built from that listing. Entries are admitted in traversal order;
   at most ``max_concurrency`` transfers are in flight for the whole call.

The first failed transfer stops admission, cancels in-flight siblings and is
raised as TransferError. There is no partial success and no resume.
"""

from __future__ import annotations

import asyncio
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from pathlib import Path

from shipflow.connections.storage import BaseStorageConnection
from shipflow.exceptions import EnumerationError, TransferError
from shipflow.sync.stats import TransferStats
from shipflow.sync.types import DirectoryEntry, ProgressReporter, SyncDirection, SyncResult
from shipflow.utils.content_types import content_type_for
from shipflow.utils.logging import format_bytes, get_logger

logger = get_logger("shipflow.sync.engine")

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_PROGRESS_INTERVAL_MS = 2000


def join_key(prefix: str, relative_path: str) -> str:
    """Compose an object key from a prefix and a relative path, forward slashes only."""
    relative_path = relative_path.replace("\\", "/").lstrip("/")
    prefix = prefix.replace("\\", "/").strip("/")
    return f"{prefix}/{relative_path}" if prefix else relative_path


class DirectorySyncEngine(ABC):
    """
    Base class for one transfer direction.

    Subclasses supply ``_enumerate`` (statistics pass listing) and
    ``_transfer`` (one file). The engine owns its TransferStats; a new
    ``sync`` call resets them, so one instance must not run two syncs at once.

    Args:
        storage: Object storage connection
        max_concurrency: Upper bound on in-flight file transfers per sync call
        progress_interval_ms: Minimum time between progress reports
        reporter: Receives progress observations (default: log line)
        clock: Monotonic clock for statistics (tests)
    """

    direction: SyncDirection

    def __init__(
        self,
        storage: BaseStorageConnection,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        progress_interval_ms: float = DEFAULT_PROGRESS_INTERVAL_MS,
        reporter: ProgressReporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.storage = storage
        self.max_concurrency = max_concurrency
        self.progress_interval_ms = progress_interval_ms
        self.stats = TransferStats(self.direction, reporter=reporter, clock=clock)

    async def sync(self, source: str | Path, destination: str | Path) -> SyncResult:
        """
        Transfer the whole subtree under ``source`` to ``destination``.

        Raises:
            EnumerationError: The source could not be listed
            TransferError: A file failed to transfer
        """
        source = str(source)
        destination = str(destination)
        self.stats.reset()
        logger.info(f"Starting {self.direction.value} from {source} to {destination}")

        try:
            entries = await self._enumerate(source)
        except EnumerationError:
            raise
        except Exception as e:
            raise EnumerationError(source, str(e), cause=e) from e

        for entry in entries:
            self.stats.add_entry(entry.size)
        logger.info(f"Found {self.stats.total_files} files totaling {format_bytes(self.stats.total_bytes)}")

        await self._prepare(destination)
        await self._run_pool(entries, destination)

        elapsed = self.stats.elapsed_seconds
        logger.info(
            f"{self.direction.value.capitalize()} complete: {self.stats.files_completed} files "
            f"({format_bytes(self.stats.bytes_completed)}) in {elapsed:.1f}s"
        )
        if self.stats.bytes_completed > 0 and elapsed > 0:
            logger.info(f"Average {self.direction.value} speed: {format_bytes(self.stats.bytes_completed / elapsed)}/s")

        return SyncResult(
            direction=self.direction,
            source=source,
            destination=destination,
            files=self.stats.files_completed,
            bytes=self.stats.bytes_completed,
            elapsed_seconds=elapsed,
        )

    async def _run_pool(self, entries: Iterable[DirectoryEntry], destination: str) -> None:
        worklist = iter(entries)
        failed = asyncio.Event()
        errors: list[TransferError] = []

        async def worker() -> None:
            while not failed.is_set():
                entry = next(worklist, None)
                if entry is None:
                    return
                try:
                    await self._transfer_entry(entry, destination)
                except TransferError as e:
                    if not failed.is_set():
                        failed.set()
                        errors.append(e)
                    return

        workers = [asyncio.create_task(worker()) for _ in range(self.max_concurrency)]
        try:
            await self._wait_for_workers(workers, failed)
        finally:
            for task in workers:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if errors:
            raise errors[0]

    @staticmethod
    async def _wait_for_workers(workers: list[asyncio.Task], failed: asyncio.Event) -> None:
        """Return once every worker finished, or as soon as one transfer failed."""
        failure = asyncio.create_task(failed.wait())
        try:
            pending = set(workers)
            while pending and not failed.is_set():
                done, pending = await asyncio.wait(pending | {failure}, return_when=asyncio.FIRST_COMPLETED)
                pending.discard(failure)
                for task in done:
                    if task is not failure and task.exception() is not None:
                        raise task.exception()  # type: ignore[misc]
        finally:
            failure.cancel()

    async def _transfer_entry(self, entry: DirectoryEntry, destination: str) -> None:
        started = time.monotonic()
        try:
            nbytes = await self._transfer(entry, destination)
        except TransferError:
            logger.error(f"Failed to {self.direction.value} {entry.path}")
            raise
        except Exception as e:
            logger.error(f"Failed to {self.direction.value} {entry.path}: {e}")
            raise TransferError(entry.path, str(e), cause=e) from e

        self.stats.record_file_complete(nbytes)
        logger.debug(
            f"{self.direction.value.capitalize()}ed {entry.relative_path} ({format_bytes(nbytes)}) "
            f"in {(time.monotonic() - started) * 1000:.0f}ms"
        )
        self.stats.maybe_report(self.progress_interval_ms)

    async def _prepare(self, destination: str) -> None:
        """Hook run after the statistics pass, before any transfer."""

    @abstractmethod
    async def _enumerate(self, source: str) -> list[DirectoryEntry]:
        """List every leaf entry under ``source`` in traversal order."""

    @abstractmethod
    async def _transfer(self, entry: DirectoryEntry, destination: str) -> int:
        """Transfer one entry; returns the number of bytes recorded."""


class UploadSyncEngine(DirectorySyncEngine):
    """
    Local directory -> object storage.

    ``sync(local_dir, key_prefix)`` stores ``local_dir/a/b.txt`` at
    ``key_prefix/a/b.txt``. Directories named in ``exclude_dirs`` are skipped
    at any depth.
    """

    direction = SyncDirection.UPLOAD

    def __init__(self, storage: BaseStorageConnection, *, exclude_dirs: Iterable[str] = (), **kwargs):
        super().__init__(storage, **kwargs)
        self.exclude_dirs = frozenset(exclude_dirs)

    async def _enumerate(self, source: str) -> list[DirectoryEntry]:
        if not os.path.isdir(source):
            raise EnumerationError(source, "not a directory")
        return await asyncio.to_thread(self._walk, source)

    def _walk(self, root: str) -> list[DirectoryEntry]:
        entries: list[DirectoryEntry] = []
        # Explicit stack instead of recursion; depth-first, names sorted per directory
        stack: list[tuple[str, str]] = [(root, "")]
        while stack:
            directory, rel_dir = stack.pop()
            try:
                with os.scandir(directory) as it:
                    children = sorted(it, key=lambda e: e.name)
            except OSError as e:
                raise EnumerationError(directory, e.strerror or str(e), cause=e) from e

            subdirs: list[tuple[str, str]] = []
            for child in children:
                rel_path = f"{rel_dir}/{child.name}" if rel_dir else child.name
                try:
                    if child.is_dir(follow_symlinks=False):
                        if child.name not in self.exclude_dirs:
                            subdirs.append((child.path, rel_path))
                    elif child.is_file():
                        entries.append(DirectoryEntry(path=child.path, relative_path=rel_path, size=child.stat().st_size))
                except OSError as e:
                    raise EnumerationError(child.path, e.strerror or str(e), cause=e) from e
            stack.extend(reversed(subdirs))
        return entries

    async def _transfer(self, entry: DirectoryEntry, destination: str) -> int:
        key = join_key(destination, entry.relative_path)
        logger.debug(f"Uploading {entry.path} ({format_bytes(entry.size)}) to {key}")
        await self.storage.put_file(
            entry.path,
            key,
            size=entry.size,
            content_type=content_type_for(entry.relative_path),
        )
        return entry.size


class DownloadSyncEngine(DirectorySyncEngine):
    """
    Object storage prefix -> local directory.

    ``sync(key_prefix, local_dir)`` writes ``key_prefix/a/b.txt`` to
    ``local_dir/a/b.txt``. Keys ending in ``/`` are directory placeholders
    and skipped; empty files are downloaded like any other object.
    """

    direction = SyncDirection.DOWNLOAD

    async def _enumerate(self, source: str) -> list[DirectoryEntry]:
        prefix = join_key(source, "") if source.strip("/") else ""
        entries: list[DirectoryEntry] = []
        token: str | None = None
        while True:
            try:
                page = await self.storage.list_objects_page(prefix, token)
            except EnumerationError:
                raise
            except Exception as e:
                raise EnumerationError(prefix or "/", str(e), cause=e) from e

            for obj in page.objects:
                if obj.key.endswith("/"):
                    continue
                relative = obj.key[len(prefix) :].lstrip("/")
                if not relative:
                    continue
                entries.append(DirectoryEntry(path=obj.key, relative_path=relative, size=obj.size))

            if not page.next_token:
                return entries
            token = page.next_token

    async def _prepare(self, destination: str) -> None:
        try:
            await asyncio.to_thread(os.makedirs, destination, exist_ok=True)
        except OSError as e:
            raise TransferError(destination, f"cannot create directory: {e}", cause=e) from e

    async def _transfer(self, entry: DirectoryEntry, destination: str) -> int:
        root = Path(destination).resolve()
        local_path = (root / entry.relative_path).resolve()
        if not local_path.is_relative_to(root):
            raise TransferError(entry.path, "object key escapes the destination directory")

        # exist_ok makes concurrent creation of a shared parent harmless
        await asyncio.to_thread(local_path.parent.mkdir, parents=True, exist_ok=True)
        logger.debug(f"Downloading {entry.path} ({format_bytes(entry.size)}) to {local_path}")
        await self.storage.download_file(entry.path, local_path)
        return entry.size
