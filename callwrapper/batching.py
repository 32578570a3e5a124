"""Chunked batch lookups merged into a single map."""

import logging
from typing import Callable, Iterator, Optional, Sequence

from .deadline import Deadline

logger = logging.getLogger(__name__)


def chunked(ids: Sequence[str], size: int) -> Iterator[list[str]]:
    """Split ids into consecutive chunks of at most ``size``, in order."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


def resolve_batches(
    ids: Sequence[str],
    chunk_size: int,
    fetch_chunk: Callable[[list[str]], list[Optional[dict]]],
    deadline: Optional[Deadline] = None,
    description: str = "records",
) -> dict[str, dict]:
    """Look up ids chunk by chunk and merge the results by record id.

    Results are keyed by each record's own ``id`` field, never by position,
    so omitted or reordered entries are harmless. None slots are skipped:
    for audio features they mean Spotify has no analysis for that track.

    Args:
        ids: Identifiers to resolve.
        chunk_size: Upstream ceiling for one batched lookup.
        fetch_chunk: Batched lookup for one chunk.
        deadline: Request deadline, checked before every chunk.
        description: What is being resolved, for logs.

    Returns:
        Map of record id to raw record, for records present in the responses.
    """
    deadline = deadline or Deadline.unbounded()
    resolved: dict[str, dict] = {}
    done = 0

    for chunk in chunked(ids, chunk_size):
        deadline.check()
        for record in fetch_chunk(chunk):
            if record is None or not record.get("id"):
                continue
            resolved[record["id"]] = record
        logger.debug(
            f"getting {description} {done} to {done + len(chunk)} out of {len(ids)}"
        )
        done += len(chunk)

    missing = len(set(ids)) - len(resolved)
    if missing > 0:
        logger.debug(f"{missing} of {len(ids)} {description} absent from upstream")
    return resolved
