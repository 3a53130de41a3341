"""
schema validation of the append-children request body, against the limits Notion documents for it
"""
from jsonschema import validate, ValidationError
from typing import Dict, Any
import logging

from notion.errors import ValidationFailure
from transform.models import BlockCategory

logger = logging.getLogger(__name__)

MAX_CHILDREN_PER_REQUEST = 100
MAX_RICH_TEXT_ITEMS = 100
MAX_TEXT_CONTENT_LENGTH = 2000
MAX_EQUATION_LENGTH = 1000

RICH_TEXT_ITEM_SCHEMA = {
    "oneOf": [
        {
            "type": "object",
            "required": ["type", "text"],
            "properties": {
                "type": {"const": "text"},
                "text": {
                    "type": "object",
                    "required": ["content"],
                    "properties": {
                        "content": {"type": "string", "maxLength": MAX_TEXT_CONTENT_LENGTH},
                    },
                },
            },
        },
        {
            "type": "object",
            "required": ["type", "equation"],
            "properties": {
                "type": {"const": "equation"},
                "equation": {
                    "type": "object",
                    "required": ["expression"],
                    "properties": {
                        "expression": {"type": "string", "maxLength": MAX_EQUATION_LENGTH},
                    },
                },
            },
        },
    ],
}

RICH_TEXT_SCHEMA = {
    "type": "array",
    "maxItems": MAX_RICH_TEXT_ITEMS,
    "items": RICH_TEXT_ITEM_SCHEMA,
}

_TEXT_TYPES = [
    category.value
    for category in BlockCategory
    if category not in (BlockCategory.DIVIDER, BlockCategory.CODE, BlockCategory.UNSUPPORTED)
]

BLOCK_SCHEMA = {
    "type": "object",
    "required": ["type"],
    "oneOf": [
        {
            "properties": {"type": {"enum": _TEXT_TYPES}},
        },
        {
            "properties": {
                "type": {"const": "code"},
                "code": {
                    "type": "object",
                    "required": ["rich_text", "language"],
                    "properties": {"language": {"type": "string", "minLength": 1}},
                },
            },
            "required": ["code"],
        },
        {
            "properties": {
                "type": {"const": "divider"},
                "divider": {"type": "object", "maxProperties": 0},
            },
            "required": ["divider"],
        },
    ],
    # Whatever the type, its body's rich_text must respect the item limits.
    "additionalProperties": {
        "anyOf": [
            {"not": {"type": "object"}},
            {"type": "object", "properties": {"rich_text": RICH_TEXT_SCHEMA}},
        ],
    },
}

APPEND_CHILDREN_SCHEMA = {
    "type": "object",
    "required": ["children"],
    "properties": {
        "children": {
            "type": "array",
            "maxItems": MAX_CHILDREN_PER_REQUEST,
            "items": BLOCK_SCHEMA,
        },
    },
}


class Validator:
    """
    Rejects upload payloads Notion would refuse, before anything on the page is deleted.
    """
    def validate(self, payload: Dict[str, Any]) -> bool:
        """
        Validates an append-children body.
        Raises ValidationFailure if validation fails.
        """
        try:
            validate(instance=payload, schema=APPEND_CHILDREN_SCHEMA)
            return True

        except ValidationError as e:
            path = "/".join(str(p) for p in e.absolute_path) or "<root>"
            logger.error(f"Upload payload rejected at {path}: {e.message}")
            raise ValidationFailure(f"Upload payload rejected at {path}: {e.message}") from e
