import re
from urllib.parse import urlparse

NOTION_HOSTS = ("notion.so", "notion.site")

_ID_RE = re.compile(
    r"^[0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12}$",
    re.IGNORECASE,
)
# Last path segment is either the bare id or "<title-slug>-<id>"
_URL_ID_RE = re.compile(r"(?:^|-)([0-9a-f]{32})$", re.IGNORECASE)


def parse_page_id(ref: str) -> str:
    """
    Accepts a Notion page URL, a 32-character id or a dashed UUID and returns
    the undashed lowercase id. Raises ValueError otherwise.
    """
    ref = (ref or "").strip()

    if _ID_RE.match(ref):
        return ref.replace("-", "").lower()

    parsed = urlparse(ref)
    host = (parsed.hostname or "").lower()
    if not any(host == h or host.endswith("." + h) for h in NOTION_HOSTS):
        raise ValueError(f"Not a Notion page: {ref!r}")

    last_segment = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    match = _URL_ID_RE.search(last_segment)
    if not match:
        raise ValueError(f"Could not extract page ID from URL: {ref!r}")

    return match.group(1).lower()
