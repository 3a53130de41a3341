import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, List, Optional, Tuple

from notion.errors import FetchFailure, NotionAPIError
from notion.notion_client import NotionClient
from transform.models import Block

logger = logging.getLogger(__name__)


@dataclass
class _Level:
    """Traversal state for the children of one block."""
    block_id: str
    pending: Deque[Block] = field(default_factory=deque)
    cursor: Optional[str] = None
    exhausted: bool = False


class TreeFetcher:
    def __init__(self, client: NotionClient):
        self.client = client
        self.pages_fetched = 0

    async def _fetch_page(self, level: _Level):
        try:
            page = await self.client.list_children(level.block_id, level.cursor)
        except NotionAPIError as e:
            logger.error(f"Failed to fetch children of {level.block_id}: {e.status}")
            raise FetchFailure(e.status, level.block_id) from e

        self.pages_fetched += 1
        level.pending.extend(replace(block, parent_id=level.block_id) for block in page.blocks)
        level.cursor = page.next_cursor
        # A missing cursor would request the first page again.
        level.exhausted = not (page.has_more and page.next_cursor)

    async def fetch_all(self, root_id: str) -> Tuple[Block, ...]:
        """
        Return every descendant of `root_id` in pre-order: each block comes
        before its children, and its whole subtree before its next sibling.

        Depth is unbounded; an explicit stack of levels replaces recursion.
        """
        blocks: List[Block] = []
        stack: List[_Level] = [_Level(block_id=root_id)]

        while stack:
            level = stack[-1]

            if not level.pending:
                if level.exhausted:
                    stack.pop()
                else:
                    await self._fetch_page(level)
                continue

            block = level.pending.popleft()
            blocks.append(block)

            if block.has_children:
                stack.append(_Level(block_id=block.id))

        logger.info(f"Fetched {len(blocks)} blocks under {root_id} in {self.pages_fetched} pages")
        return tuple(blocks)
