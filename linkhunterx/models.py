from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class InternalTag(enum.IntEnum):
    URL = 0
    HTTP = 1
    FILE = 2
    VOIP = 3
    EMAIL = 4
    NEWS_MAN = 5


class PublicTag(enum.IntEnum):
    URI = 0


@dataclass(frozen=True)
class MatchResult:
    start: int
    end: int
    text: str
    partial: bool = False
    public_tag: Optional[PublicTag] = None

    @property
    def empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class Recognized:
    start: int
    end: int
    public_tag: PublicTag
    internal_tag: InternalTag
    raw: str
    value: str
    partial: bool = False


@dataclass(frozen=True)
class Occurrence:
    source: str
    line_no: int
    snippet: str


@dataclass(frozen=True)
class Finding:
    tag: PublicTag
    internal_tag: InternalTag
    value: str
    occurrence: Occurrence
    start: int = 0
    end: int = 0

    @property
    def category(self) -> str:
        return self.internal_tag.name.lower()
