import json
import unittest
from unittest.mock import AsyncMock, patch

import httpx

from notion.errors import NotionAPIError
from notion.notion_client import NotionClient
from transform.models import BlockCategory


def paragraph_json(block_id, text, has_children=False):
    return {
        "object": "block",
        "id": block_id,
        "type": "paragraph",
        "has_children": has_children,
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": text}}]},
    }


class RecordingHandler:
    """Serves queued responses and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(handler, retries=3):
    return NotionClient(
        "ntn_test",
        base_url="https://api.notion.test/v1",
        retries=retries,
        transport=httpx.MockTransport(handler),
    )


class TestNotionClient(unittest.IsolatedAsyncioTestCase):

    async def test_list_children_parses_page(self):
        handler = RecordingHandler(httpx.Response(200, json={
            "object": "list",
            "results": [paragraph_json("a-1", "hello", has_children=True)],
            "next_cursor": "cur-2",
            "has_more": True,
        }))

        async with make_client(handler) as client:
            page = await client.list_children("page-id", "cur-1")

        self.assertEqual(len(page.blocks), 1)
        self.assertEqual(page.blocks[0].category, BlockCategory.PARAGRAPH)
        self.assertTrue(page.blocks[0].has_children)
        self.assertEqual(page.next_cursor, "cur-2")
        self.assertTrue(page.has_more)

        request = handler.requests[0]
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/v1/blocks/pageid/children")
        self.assertEqual(request.url.params["page_size"], "100")
        self.assertEqual(request.url.params["start_cursor"], "cur-1")
        self.assertEqual(request.headers["Authorization"], "Bearer ntn_test")
        self.assertEqual(request.headers["Notion-Version"], "2022-06-28")

    async def test_first_page_has_no_cursor(self):
        handler = RecordingHandler(httpx.Response(200, json={"results": [], "has_more": False}))

        async with make_client(handler) as client:
            page = await client.list_children("root")

        self.assertEqual(page.blocks, ())
        self.assertNotIn("start_cursor", handler.requests[0].url.params)

    async def test_delete_strips_dashes(self):
        handler = RecordingHandler(httpx.Response(200, json={"object": "block", "archived": True}))

        async with make_client(handler) as client:
            await client.delete_block("1234-abcd")

        self.assertEqual(handler.requests[0].method, "DELETE")
        self.assertEqual(handler.requests[0].url.path, "/v1/blocks/1234abcd")

    async def test_append_children_body(self):
        handler = RecordingHandler(httpx.Response(200, json={"results": []}))
        children = [{"object": "block", "type": "divider", "divider": {}}]

        async with make_client(handler) as client:
            await client.append_children("root", children)

        request = handler.requests[0]
        self.assertEqual(request.method, "PATCH")
        self.assertEqual(request.url.path, "/v1/blocks/root/children")
        self.assertEqual(json.loads(request.content), {"children": children})

    async def test_client_error_is_not_retried(self):
        handler = RecordingHandler(httpx.Response(404, json={"code": "object_not_found"}))

        async with make_client(handler) as client:
            with self.assertRaises(NotionAPIError) as ctx:
                await client.list_children("missing")

        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(ctx.exception.body, {"code": "object_not_found"})
        self.assertEqual(len(handler.requests), 1)

    async def test_server_error_and_rate_limit_are_retried(self):
        handler = RecordingHandler(
            httpx.Response(429, headers={"Retry-After": "1"}),
            httpx.Response(502),
            httpx.Response(200, json={"results": [], "has_more": False}),
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with make_client(handler) as client:
                page = await client.list_children("root")

        self.assertEqual(page.blocks, ())
        self.assertEqual(len(handler.requests), 3)
        self.assertEqual(sleep.await_count, 2)

    async def test_retries_exhausted(self):
        handler = RecordingHandler(
            httpx.Response(500),
            httpx.ConnectError("boom"),
            httpx.Response(503),
        )

        with patch("asyncio.sleep", new_callable=AsyncMock):
            async with make_client(handler) as client:
                with self.assertRaises(NotionAPIError) as ctx:
                    await client.delete_block("b")

        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(len(handler.requests), 3)

    async def test_upload_is_never_retried(self):
        handler = RecordingHandler(httpx.Response(500, json={"message": "oops"}))

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with make_client(handler) as client:
                with self.assertRaises(NotionAPIError) as ctx:
                    await client.append_children("root", [])

        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.body, {"message": "oops"})
        self.assertEqual(len(handler.requests), 1)
        sleep.assert_not_awaited()

    async def test_unparseable_retry_after_falls_back_to_backoff(self):
        handler = RecordingHandler(
            httpx.Response(429, headers={"Retry-After": "soon"}),
            httpx.Response(200, json={"object": "block"}),
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with make_client(handler) as client:
                await client.delete_block("b")

        sleep.assert_awaited_once_with(1)
        self.assertEqual(len(handler.requests), 2)

    async def test_non_json_success_body(self):
        handler = RecordingHandler(httpx.Response(200, text="<html>maintenance</html>"))

        async with make_client(handler) as client:
            with self.assertRaises(NotionAPIError) as ctx:
                await client.list_children("root")

        self.assertEqual(ctx.exception.status, 200)
        self.assertEqual(ctx.exception.body, "<html>maintenance</html>")

    async def test_malformed_listing(self):
        for body in [
            {"results": [{"type": "paragraph", "paragraph": {"rich_text": []}}]},
            {"results": "nope"},
        ]:
            handler = RecordingHandler(httpx.Response(200, json=body))

            async with make_client(handler) as client:
                with self.assertRaises(NotionAPIError) as ctx:
                    await client.list_children("root")

            self.assertEqual(ctx.exception.body, body)

    async def test_requires_context_manager(self):
        client = make_client(RecordingHandler())
        with self.assertRaises(RuntimeError):
            await client.delete_block("b")


if __name__ == "__main__":
    unittest.main()
