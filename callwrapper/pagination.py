"""Offset pagination over a paged upstream endpoint."""

import logging
from typing import Callable, Optional

from .deadline import Deadline
from .errors import PaginationLimitError
from .models import Page

logger = logging.getLogger(__name__)


def paginate(
    fetch_page: Callable[[int], Page],
    page_size: int,
    max_pages: int = 200,
    deadline: Optional[Deadline] = None,
    description: str = "items",
) -> list[dict]:
    """Fetch every page of a collection and concatenate the items.

    Pages are requested at offsets ``0, page_size, 2 * page_size, ...`` and
    the loop stops after the page whose span reaches the declared total.
    The total of the most recently fetched page decides termination; when it
    changes between pages the drift is logged, not corrected. A total of 0
    still costs one fetch.

    Args:
        fetch_page: Returns the page starting at the given offset.
        page_size: Items requested per page.
        max_pages: Upper bound on fetches for a misbehaving upstream.
        deadline: Request deadline, checked before every fetch.
        description: What is being paged, for logs.

    Returns:
        All items in page order, then in-page order.

    Raises:
        ValueError: If page_size or max_pages is not positive.
        PaginationLimitError: If the total is not reached within max_pages.
        DeadlineExceededError: If the deadline passes mid-way.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if max_pages < 1:
        raise ValueError(f"max_pages must be positive, got {max_pages}")

    deadline = deadline or Deadline.unbounded()
    items: list[dict] = []
    first_total: Optional[int] = None
    offset = 0

    for _ in range(max_pages):
        deadline.check()
        page = fetch_page(offset)
        total = page.total

        if first_total is None:
            first_total = total
        elif total != first_total:
            logger.warning(
                f"Declared total for {description} changed from {first_total} "
                f"to {total} at offset {offset}"
            )

        logger.debug(
            f"getting {description} {offset} to {offset + page_size} out of {total}"
        )
        items.extend(page.items)

        if offset + page_size >= total:
            return items
        offset += page_size

    logger.error(f"Gave up paging {description} after {max_pages} pages")
    raise PaginationLimitError(max_pages, total)
