from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Union

import regex

from .compiler import CompiledMatcher, Purpose
from .console import RichLogger
from .models import MatchResult, Recognized
from .registry import BuiltinEntry, BuiltinRegistry

SubjectLike = Union[str, bytes, bytearray, memoryview]


@dataclass(frozen=True)
class Subject:
    native: Union[str, bytes]
    text: str

    @classmethod
    def from_native(cls, subject: SubjectLike, no_utf_check: bool = False) -> "Subject":
        if isinstance(subject, str):
            return cls(subject, subject)
        if isinstance(subject, (bytes, bytearray, memoryview)):
            raw = bytes(subject)
            # surrogateescape keeps undecodable bytes one-to-one so offsets still map back
            errors = "surrogateescape" if no_utf_check else "strict"
            return cls(raw, raw.decode("utf-8", errors=errors))
        raise TypeError(f"subject must be str or bytes, not {type(subject).__name__}")

    @property
    def is_bytes(self) -> bool:
        return isinstance(self.native, bytes)

    def to_index(self, offset: int) -> int:
        if not self.is_bytes:
            return offset
        return len(self.native[:offset].decode("utf-8", errors="surrogateescape"))

    def to_native(self, index: int) -> int:
        if not self.is_bytes:
            return index
        return len(self.text[:index].encode("utf-8", errors="surrogateescape"))

    def bounds(self, pos: int, endpos: Optional[int]) -> tuple[int, int]:
        size = len(self.native)
        pos = min(max(0, pos), size)
        endpos = size if endpos is None else min(max(pos, endpos), size)
        return self.to_index(pos), self.to_index(endpos)


def _execute(
    matcher: CompiledMatcher,
    text: str,
    pos: int,
    endpos: int,
    anchored: Optional[bool],
    partial: bool,
    logger: Optional[RichLogger],
) -> Optional["regex.Match[str]"]:
    pattern = matcher.acquire()
    if anchored is None:
        anchored = matcher.purpose is Purpose.VALIDATE
    whole = anchored and matcher.purpose is Purpose.VALIDATE
    if not matcher.may_match(text, pos, endpos, partial):
        return None
    if whole:
        run = pattern.fullmatch
    elif anchored:
        run = pattern.match
    else:
        run = pattern.search
    settings = matcher.settings
    try:
        return run(
            text,
            pos,
            endpos,
            concurrent=True if settings.release_gil else None,
            partial=partial,
            timeout=settings.match_timeout,
        )
    except TimeoutError:
        if logger is not None:
            logger.warn(f"{matcher.name} timed out after {settings.match_timeout:.3f}s at offset {pos}")
        return None


def _to_result(subject: Subject, m: "regex.Match[str]") -> MatchResult:
    start, end = m.span()
    return MatchResult(
        start=subject.to_native(start),
        end=subject.to_native(end),
        text=m.group(),
        partial=bool(m.partial),
    )


def match(
    matcher: CompiledMatcher,
    subject: SubjectLike,
    anchored: Optional[bool] = None,
    *,
    pos: int = 0,
    endpos: Optional[int] = None,
    partial: bool = False,
    no_utf_check: bool = False,
    logger: Optional[RichLogger] = None,
) -> Optional[MatchResult]:
    try:
        subj = Subject.from_native(subject, no_utf_check)
    except UnicodeDecodeError:
        return None
    start, stop = subj.bounds(pos, endpos)
    m = _execute(matcher, subj.text, start, stop, anchored, partial, logger)
    if m is None:
        return None
    return _to_result(subj, m)


def match_entry(
    entry: BuiltinEntry,
    subject: SubjectLike,
    anchored: Optional[bool] = None,
    **kwargs,
) -> Optional[MatchResult]:
    result = match(entry.matcher, subject, anchored, **kwargs)
    if result is None:
        return None
    return replace(result, public_tag=entry.public_tag)


def iter_matches(
    matcher: CompiledMatcher,
    subject: SubjectLike,
    *,
    pos: int = 0,
    endpos: Optional[int] = None,
    partial: bool = False,
    no_utf_check: bool = False,
    logger: Optional[RichLogger] = None,
) -> Iterator[MatchResult]:
    try:
        subj = Subject.from_native(subject, no_utf_check)
    except UnicodeDecodeError:
        return
    index, stop = subj.bounds(pos, endpos)
    while index <= stop:
        m = _execute(matcher, subj.text, index, stop, False, partial, logger)
        if m is None:
            return
        yield _to_result(subj, m)
        start, end = m.span()
        index = end if end > start else end + 1


def scan_text(
    registry: BuiltinRegistry,
    subject: SubjectLike,
    *,
    pos: int = 0,
    endpos: Optional[int] = None,
    partial: bool = False,
    no_utf_check: bool = False,
    logger: Optional[RichLogger] = None,
) -> Iterator[Recognized]:
    try:
        subj = Subject.from_native(subject, no_utf_check)
    except UnicodeDecodeError:
        return
    entries = registry.entries()
    text = subj.text
    # text before index stays visible to lookbehinds
    index, stop = subj.bounds(pos, endpos)
    pending: List[Optional["regex.Match[str]"]] = [None] * len(entries)
    exhausted = [False] * len(entries)
    while index <= stop:
        best = None
        best_idx = -1
        for idx, entry in enumerate(entries):
            if exhausted[idx]:
                continue
            candidate = pending[idx]
            if candidate is None or candidate.start() < index:
                candidate = _execute(entry.matcher, text, index, stop, False, partial, logger)
                pending[idx] = candidate
                if candidate is None:
                    exhausted[idx] = True
                    continue
            if best is None or candidate.start() < best.start():
                best, best_idx = candidate, idx
        if best is None:
            return
        start, end = best.span()
        if end > start:
            entry = entries[best_idx]
            raw = best.group()
            value, public_tag = entry.transform(raw)
            yield Recognized(
                start=subj.to_native(start),
                end=subj.to_native(end),
                public_tag=public_tag,
                internal_tag=entry.tag,
                raw=raw,
                value=value,
                partial=bool(best.partial),
            )
        index = end if end > start else end + 1
