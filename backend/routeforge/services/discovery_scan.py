"""Discovery Scan — chunked fan-out over convention files with per-file failure isolation.

Invariants:
    - Root listing failure raises DiscoveryFailedError (fatal to that pass only)
    - A single file's failure becomes a DiscoveryFailure; siblings keep loading
    - Results keep listing order, so "first found" is deterministic
    - Summary logged as "<Kind> discovery completed: x/y files processed successfully"

Design Decisions:
    - Chunks are gathered together (full fan-out bounded only by chunk size), one inner
      gather per chunk: matches the event-loop scheduling of the route layer
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

from routeforge.core.errors import DiscoveryFailedError
from routeforge.core.protocols import LoggerLike, ModuleLoader
from routeforge.core.records import DiscoveryFailure

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 10


@dataclass
class ScanResult(Generic[T]):
    found: int = 0
    records: list[T] = field(default_factory=list)
    failures: list[DiscoveryFailure] = field(default_factory=list)


def chunk(items: list[Any], size: int) -> list[list[Any]]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


def list_candidates(
    loader: ModuleLoader, root: str, suffixes: tuple[str, ...], log: LoggerLike,
    kind: str,
) -> list[str]:
    log.debug({"apiPath": root}, f"Starting {kind} discovery")
    try:
        files = loader.list_files(root, suffixes)
    except OSError as e:
        log.error({"apiPath": root, "error": str(e)}, f"{kind.capitalize()} discovery failed")
        raise DiscoveryFailedError(root, str(e)) from e
    log.debug({"count": len(files)}, f"Found {kind} files")
    return files


async def scan_files(
    files: list[str],
    process: Callable[[str], Awaitable[T | None]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ScanResult[T]:
    """Run process() over every file; None means skipped, an exception means failed."""
    result: ScanResult[T] = ScanResult(found=len(files))

    async def run_chunk(paths: list[str]) -> list[Any]:
        return await asyncio.gather(
            *(process(path) for path in paths), return_exceptions=True,
        )

    chunk_results = await asyncio.gather(
        *(run_chunk(paths) for paths in chunk(files, chunk_size)),
    )

    outcomes = [outcome for chunk_result in chunk_results for outcome in chunk_result]
    for path, outcome in zip(files, outcomes):
        if isinstance(outcome, Exception):
            result.failures.append(DiscoveryFailure(file=path, error=str(outcome)))
        elif isinstance(outcome, BaseException):
            raise outcome
        elif outcome is not None:
            result.records.append(outcome)
    return result


def log_scan_summary(log: LoggerLike, kind: str, scan: ScanResult, **extra: Any) -> None:
    processed = f"{len(scan.records)}/{scan.found}"
    log.info(
        {"processedFiles": processed, **extra},
        f"{kind.capitalize()} discovery completed: {processed} files processed successfully",
    )
    if scan.failures:
        log.warn(
            {"failedCount": len(scan.failures)},
            f"Failed to process {len(scan.failures)} {kind} files",
        )
        for failure in scan.failures:
            log.error(
                {"file": failure.file, "error": failure.error},
                f"Failed to process {kind} file",
            )
