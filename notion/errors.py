from typing import Any, Optional


class ConversionError(Exception):
    """Base class for every failure raised while converting a page."""


class NotionAPIError(ConversionError):
    """
    A request to the Notion API did not succeed.
    `status` is None when the request never produced a response (transport error).
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class FetchFailure(ConversionError):
    """Listing the children of `scope` failed. Raised before any mutation."""

    def __init__(self, status: Optional[int], scope: str):
        super().__init__(f"Failed to fetch blocks of {scope}: {status}")
        self.status = status
        self.scope = scope


class ValidationFailure(ConversionError):
    """The rebuilt blocks would be rejected by the API. Raised before any mutation."""


class DeleteFailure(ConversionError):
    """Deleting a single block failed. Recorded, never fatal."""

    def __init__(self, block_id: str, status: Optional[int]):
        super().__init__(f"Failed to delete block {block_id}: {status}")
        self.block_id = block_id
        self.status = status


class UploadFailure(ConversionError):
    """
    Appending the rebuilt blocks failed after the old blocks were deleted.
    The page is left without its original content.
    """

    def __init__(self, status: Optional[int], body: Any = None, deleted: int = 0):
        super().__init__(f"Upload failed: {status} - {body}")
        self.status = status
        self.body = body
        self.deleted = deleted
