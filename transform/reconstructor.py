import logging
from typing import Iterable, List, Optional

from notion.config import DEFAULT_CODE_LANGUAGE
from transform.models import (
    Block,
    BlockCategory,
    ReconstructedBlock,
    TextRun,
    render_runs,
)
from transform.tokenizer import tokenize, has_equations

logger = logging.getLogger(__name__)

# Categories whose rich text is split into text/equation segments
SEGMENTED_CATEGORIES = frozenset({
    BlockCategory.PARAGRAPH,
    BlockCategory.HEADING_1,
    BlockCategory.HEADING_2,
    BlockCategory.HEADING_3,
    BlockCategory.QUOTE,
    BlockCategory.BULLETED_LIST_ITEM,
})


def reconstruct(block: Block) -> Optional[ReconstructedBlock]:
    """
    Build the replacement for `block`, or None when it has no place on the
    rebuilt page (empty text or an unsupported type).

    Native equations are flattened back to `$$ expr $$` first, so a block
    that already holds equations keeps them after the round trip.
    """
    content = render_runs(block.rich_text)
    if not content:
        return None

    segments = tokenize(content)
    category = block.category

    if category == BlockCategory.DIVIDER:
        return ReconstructedBlock(category=category)

    elif category == BlockCategory.CODE:
        # Code is never segmented; markers inside stay literal.
        return ReconstructedBlock(
            category=category,
            rich_text=(TextRun(content=content),),
            language=block.language or DEFAULT_CODE_LANGUAGE,
        )

    elif category in SEGMENTED_CATEGORIES:
        if has_equations(segments):
            return ReconstructedBlock(category=category, rich_text=tuple(segments))
        return ReconstructedBlock(category=category, rich_text=(TextRun(content=content),))

    # BlockCategory.UNSUPPORTED
    logger.debug(f"Dropping unsupported block {block.id} of type {block.type!r}")
    return None


def reconstruct_all(blocks: Iterable[Block]) -> List[ReconstructedBlock]:
    rebuilt = []
    for block in blocks:
        new_block = reconstruct(block)
        if new_block is not None:
            rebuilt.append(new_block)
    return rebuilt


def _has_markers(texts: List[str]) -> bool:
    return bool(texts) and has_equations(tokenize("".join(texts)))


def has_pending_markers(block: Block) -> bool:
    """
    True when the block's text runs still contain marker syntax that
    reconstruct() would turn into equations. Native equation runs do not
    count, so a page that was already converted reports False.
    """
    if block.category not in SEGMENTED_CATEGORIES:
        return False

    # Consecutive text runs are joined; a native equation ends the stretch.
    pending: List[str] = []
    for run in block.rich_text:
        if isinstance(run, TextRun):
            pending.append(run.content)
            continue
        if _has_markers(pending):
            return True
        pending = []

    return _has_markers(pending)
