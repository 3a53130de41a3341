from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union


class BlockCategory(Enum):
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    QUOTE = "quote"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    DIVIDER = "divider"
    CODE = "code"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_type(cls, block_type: Optional[str]) -> "BlockCategory":
        try:
            category = cls(block_type)
        except ValueError:
            return cls.UNSUPPORTED
        return category


@dataclass(frozen=True)
class TextRun:
    content: str

    def render(self) -> str:
        return self.content

    def to_api(self) -> Dict[str, Any]:
        return {"type": "text", "text": {"content": self.content}}


@dataclass(frozen=True)
class EquationRun:
    expression: str
    # Exact marker-delimited substring the tokenizer read this equation from.
    # None for equations that came from the API.
    source: Optional[str] = None

    def render(self) -> str:
        if self.source is not None:
            return self.source
        return f"$$ {self.expression} $$"

    def to_api(self) -> Dict[str, Any]:
        return {"type": "equation", "equation": {"expression": self.expression}}


# A Run is the API's rich text item, a Segment is the tokenizer's output.
# Both use the same two variants.
Run = Union[TextRun, EquationRun]
Segment = Run


def run_from_api(item: Dict[str, Any]) -> Optional[Run]:
    """
    Convert one Notion rich text item. Mentions and other item types carry no
    text the converter can use and are skipped.
    """
    item_type = item.get("type")

    if item_type == "text":
        return TextRun(content=item.get("text", {}).get("content", ""))

    if item_type == "equation":
        return EquationRun(expression=item.get("equation", {}).get("expression", ""))

    return None


@dataclass(frozen=True)
class Block:
    id: str
    type: str
    category: BlockCategory
    rich_text: Tuple[Run, ...] = ()
    language: Optional[str] = None
    has_children: bool = False
    # Id of the block whose children listing returned this block, set by the fetcher.
    parent_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Block":
        block_type = data.get("type", "")
        payload = data.get(block_type) or {}

        runs = []
        for item in payload.get("rich_text", []) or []:
            run = run_from_api(item)
            if run is not None:
                runs.append(run)

        return cls(
            id=str(data["id"]),
            type=block_type,
            category=BlockCategory.from_type(block_type),
            rich_text=tuple(runs),
            language=payload.get("language") if block_type == "code" else None,
            has_children=bool(data.get("has_children", False)),
        )


@dataclass(frozen=True)
class ReconstructedBlock:
    category: BlockCategory
    rich_text: Tuple[Run, ...] = ()
    language: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        block_type = self.category.value

        if self.category == BlockCategory.DIVIDER:
            body: Dict[str, Any] = {}
        else:
            body = {"rich_text": [run.to_api() for run in self.rich_text]}
            if self.category == BlockCategory.CODE:
                body["language"] = self.language

        return {"object": "block", "type": block_type, block_type: body}


@dataclass(frozen=True)
class ChildrenPage:
    """One page of a block's children, as returned by the list endpoint."""
    blocks: Tuple[Block, ...] = ()
    next_cursor: Optional[str] = None
    has_more: bool = False


def render_runs(runs: Iterable[Run]) -> str:
    return "".join(run.render() for run in runs)
