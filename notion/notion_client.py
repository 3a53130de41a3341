import httpx
import logging
import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from pydantic import BaseModel, Field

from notion.config import (
    NOTION_API_URL,
    NOTION_VERSION,
    NOTION_CLIENT_PAGE_SIZE,
    NOTION_CLIENT_RETRIES,
)
from notion.errors import NotionAPIError
from transform.models import Block, ChildrenPage

logger = logging.getLogger(__name__)


class ListChildrenResponse(BaseModel):
    results: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


def _clean_id(block_id: str) -> str:
    return block_id.replace("-", "")


class NotionClient:
    """
    Thin async wrapper over the three block endpoints the converter needs.

    Use as an async context manager so every request of one conversion shares
    a single connection pool.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = NOTION_API_URL,
        notion_version: str = NOTION_VERSION,
        page_size: int = NOTION_CLIENT_PAGE_SIZE,
        retries: int = NOTION_CLIENT_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.page_size = page_size
        self.retries = max(1, retries)

        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }
        self.timeout = httpx.Timeout(30.0, connect=60.0)
        self.limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "NotionClient":
        self._client = httpx.AsyncClient(
            headers=self.headers,
            timeout=self.timeout,
            limits=self.limits,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Dict[str, Any] = None,
        json: Dict[str, Any] = None,
        retry: bool = True,
    ) -> Dict[str, Any]:

        if self._client is None:
            raise RuntimeError("NotionClient must be used inside 'async with'")

        url = urljoin(self.base_url, endpoint)
        retries = self.retries if retry else 1
        last_status = None
        last_body: Any = None

        for attempt in range(retries):
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                )

                if response.status_code == 429 and attempt + 1 < retries:
                    wait_time = _retry_after(response, default=2 ** attempt)
                    logger.warning(f"Rate limited. Waiting {wait_time}s...")
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                try:
                    return response.json()
                except ValueError as e:
                    raise NotionAPIError(
                        f"{method} {url} returned a non-JSON body",
                        status=response.status_code,
                        body=response.text,
                    ) from e

            except httpx.HTTPStatusError as e:
                last_status = e.response.status_code
                last_body = _response_body(e.response)
                if last_status < 500 and last_status != 429:
                    logger.error(f"Client error {last_status} for {method} {url}: {last_body}")
                    raise NotionAPIError(
                        f"{method} {url} failed: {last_status}", status=last_status, body=last_body
                    ) from e
                logger.warning(
                    f"Retryable error {last_status} "
                    f"(Attempt {attempt + 1}/{retries})"
                )
            except httpx.RequestError as e:
                last_status = None
                last_body = str(e)
                logger.warning(
                    f"Request error (Attempt {attempt + 1}/{retries}): {e}"
                )

            if attempt + 1 < retries:
                await asyncio.sleep(2 ** attempt)

        raise NotionAPIError(
            f"{method} {url} failed after {retries} attempts: {last_status}",
            status=last_status,
            body=last_body,
        )

    async def list_children(self, block_id: str, cursor: Optional[str] = None) -> ChildrenPage:
        params: Dict[str, Any] = {"page_size": self.page_size}
        if cursor:
            params["start_cursor"] = cursor

        data = await self._make_request("GET", f"blocks/{_clean_id(block_id)}/children", params)
        try:
            page = ListChildrenResponse.model_validate(data)
            blocks = tuple(Block.from_api(item) for item in page.results)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed children listing for {block_id}: {e}")
            raise NotionAPIError(f"Malformed children listing for {block_id}", status=200, body=data) from e

        return ChildrenPage(
            blocks=blocks,
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )

    async def delete_block(self, block_id: str) -> None:
        await self._make_request("DELETE", f"blocks/{_clean_id(block_id)}")

    async def append_children(self, parent_id: str, children: List[Dict[str, Any]]) -> Dict[str, Any]:
        # Not retried: a timed-out PATCH may still have been applied.
        return await self._make_request(
            "PATCH",
            f"blocks/{_clean_id(parent_id)}/children",
            json={"children": children},
            retry=False,
        )


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _retry_after(response: httpx.Response, default: float) -> float:
    try:
        return max(0.0, float(response.headers["Retry-After"]))
    except (KeyError, ValueError):
        return default
