import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import List, Optional

from notion.config import get_api_key, setup_logging
from notion.errors import ConversionError, UploadFailure
from notion.notion_client import NotionClient
from notion.page_ref import parse_page_id
from pipeline.convert_pipeline import EquationConverter
from pipeline.outcomes import Converted

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNTOUCHED = 1
EXIT_PARTIAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-equations",
        description="Convert $...$ and $$...$$ markers on a Notion page into native equations.",
    )
    parser.add_argument("page", help="Notion page URL or page ID")
    parser.add_argument("--api-key", help="Notion integration token (defaults to NOTION_API_KEY)")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
    return parser


async def run_conversion(page_id: str, api_key: str) -> int:
    async with NotionClient(api_key) as client:
        converter = EquationConverter(client)
        try:
            outcome = await converter.convert(page_id)
        except UploadFailure as e:
            logger.critical(
                f"Page {page_id} is partially migrated: {e.deleted} original blocks were deleted "
                f"but the upload failed ({e.status}): {e.body}"
            )
            return EXIT_PARTIAL
        except ConversionError as e:
            logger.error(f"Conversion aborted, page {page_id} left untouched: {e}")
            return EXIT_UNTOUCHED

    if isinstance(outcome, Converted):
        logger.info(f"Converted {outcome.count} blocks ({outcome.fetched} fetched, {outcome.deleted} deleted)")
        for failure in outcome.failed_deletions:
            logger.warning(f"Old block {failure.block_id} could not be deleted ({failure.status})")
    else:
        logger.info(f"No equations found in {outcome.fetched} blocks; page left untouched")

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        page_id = parse_page_id(args.page)
        api_key = get_api_key(args.api_key)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_UNTOUCHED

    start_time = datetime.now()
    exit_code = asyncio.run(run_conversion(page_id, api_key))
    logger.info(f"Execution time: {datetime.now() - start_time}")
    return exit_code


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
