import logging
from typing import Callable, List, Optional, Sequence

from notion.errors import (
    DeleteFailure,
    FetchFailure,
    NotionAPIError,
    UploadFailure,
    ValidationFailure,
)
from notion.fetcher import TreeFetcher
from notion.notion_client import NotionClient
from pipeline.outcomes import ConversionOutcome, Converted, NoEquationsFound
from transform.models import Block
from transform.reconstructor import reconstruct_all, has_pending_markers
from transform.validator import Validator

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str], None]


def log_progress(message: str) -> None:
    logger.info(message)


class EquationConverter:
    """
    Replaces the content of a page with rebuilt blocks whose $-markers became
    native equations.

    Order of side effects: fetch everything, rebuild and validate, delete every
    old block, then upload the new ones in one request. There is no rollback:
    if the upload fails the page is left without its old content. Running two
    conversions on the same page at once, or editing it meanwhile, is not
    guarded against.
    """

    def __init__(
        self,
        client: NotionClient,
        progress: Optional[ProgressSink] = None,
        validator: Optional[Validator] = None,
    ):
        self.client = client
        self.fetcher = TreeFetcher(client)
        self.validator = validator or Validator()
        self.progress = progress or log_progress

    async def convert(self, root_id: str) -> ConversionOutcome:
        logger.info(f"Starting equation conversion for {root_id}")

        # 1. Fetch
        try:
            blocks = await self.fetcher.fetch_all(root_id)
        except FetchFailure as e:
            self.progress(f"Error: {e} (page untouched)")
            raise
        self.progress(f"Found {len(blocks)} blocks. Converting...")

        # 2. Rebuild
        rebuilt = reconstruct_all(blocks)

        if not rebuilt or not any(has_pending_markers(b) for b in blocks):
            self.progress("No equations found!")
            return NoEquationsFound(fetched=len(blocks))

        # 3. Validate before anything is deleted
        children = [block.to_api() for block in rebuilt]
        try:
            self.validator.validate({"children": children})
        except ValidationFailure as e:
            self.progress(f"Error: {e} (page untouched)")
            raise

        # 4. Delete
        self.progress(f"Deleting {len(blocks)} old blocks...")
        failures = await self._delete_blocks(blocks)
        deleted = len(blocks) - len(failures)

        # 5. Upload
        self.progress(f"Uploading {len(rebuilt)} new blocks...")
        try:
            await self.client.append_children(root_id, children)
        except NotionAPIError as e:
            logger.error(
                f"Upload of {len(rebuilt)} blocks to {root_id} failed with {e.status} "
                f"after {deleted} blocks were deleted"
            )
            self.progress(f"Error: upload failed ({e.status}); {deleted} original blocks already deleted")
            raise UploadFailure(e.status, e.body, deleted=deleted) from e

        self.progress(f"Done! Converted {len(rebuilt)} blocks.")
        logger.info(
            f"Conversion finished for {root_id}: fetched={len(blocks)}, deleted={deleted}, "
            f"delete_errors={len(failures)}, uploaded={len(rebuilt)}"
        )
        return Converted(
            count=len(rebuilt),
            fetched=len(blocks),
            deleted=deleted,
            failed_deletions=tuple(failures),
        )

    async def _delete_blocks(self, blocks: Sequence[Block]) -> List[DeleteFailure]:
        failures = []
        removed = set()
        for block in blocks:
            # Pre-order: a parent is always handled before its children.
            if block.parent_id is not None and block.parent_id in removed:
                # Archived together with its parent
                removed.add(block.id)
                continue
            try:
                await self.client.delete_block(block.id)
                removed.add(block.id)
            except NotionAPIError as e:
                logger.warning(f"Failed to delete block {block.id}: {e.status}")
                failures.append(DeleteFailure(block.id, e.status))
        return failures
