from dataclasses import dataclass
from typing import Tuple, Union

from notion.errors import DeleteFailure


@dataclass(frozen=True)
class NoEquationsFound:
    """Nothing to convert; the page was not touched."""
    fetched: int = 0


@dataclass(frozen=True)
class Converted:
    count: int
    fetched: int = 0
    deleted: int = 0
    failed_deletions: Tuple[DeleteFailure, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.failed_deletions


ConversionOutcome = Union[NoEquationsFound, Converted]
