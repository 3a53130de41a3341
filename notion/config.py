import os
import logging
from typing import Optional
from dotenv import load_dotenv, find_dotenv

# Load environment variables from .env file
load_dotenv(find_dotenv())

# Notion Settings
NOTION_API_KEY = os.getenv("NOTION_API_KEY")
NOTION_API_URL = os.getenv("NOTION_API_URL", "https://api.notion.com/v1/")
NOTION_VERSION = os.getenv("NOTION_VERSION", "2022-06-28")

# Accepted integration token prefixes (new "ntn_" tokens and legacy "secret_" ones)
NOTION_API_KEY_PREFIXES = ("ntn_", "secret_")

# Notion Client Settings
NOTION_CLIENT_PAGE_SIZE = int(os.getenv("NOTION_CLIENT_PAGE_SIZE", 100))
NOTION_CLIENT_RETRIES = int(os.getenv("NOTION_CLIENT_RETRIES", 3))

# Conversion Settings
DEFAULT_CODE_LANGUAGE = os.getenv("DEFAULT_CODE_LANGUAGE", "python")

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_api_key(explicit: Optional[str] = None) -> str:
    """
    Resolve the integration token: an explicit value wins over NOTION_API_KEY.
    Raises ValueError if no usable token is available.
    """
    api_key = (explicit or NOTION_API_KEY or "").strip()

    if not api_key:
        raise ValueError("Notion API key required (pass --api-key or set NOTION_API_KEY)")

    if not api_key.startswith(NOTION_API_KEY_PREFIXES):
        raise ValueError(
            f"Invalid Notion API key. Should start with one of {', '.join(NOTION_API_KEY_PREFIXES)}"
        )

    return api_key


def setup_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
