from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

from .compiler import CompiledMatcher, GrammarCompileError, Purpose, accelerate, compile_grammar
from .config import MatcherSettings
from .console import RichLogger
from .grammar import FragmentLibrary, Grammar
from .models import InternalTag, PublicTag
from .normalize import PUBLIC_TAGS, TRANSFORMS
from .patterns import (
    LIBRARY,
    REGEX_EMAIL,
    REGEX_NEWS_MAN,
    REGEX_URL_AS_IS,
    REGEX_URL_FILE,
    REGEX_URL_HTTP,
    REGEX_URL_VOIP,
)


@dataclass(frozen=True)
class BuiltinCategory:
    tag: InternalTag
    grammar: Grammar
    transform: Callable[[str], str]
    public_tag: PublicTag = PublicTag.URI


def _category(tag: InternalTag, grammar: Grammar) -> BuiltinCategory:
    return BuiltinCategory(tag=tag, grammar=grammar, transform=TRANSFORMS[tag], public_tag=PUBLIC_TAGS[tag])


# Registration order is also the order in which overlapping matches are tried
CATEGORIES: Tuple[BuiltinCategory, ...] = (
    _category(InternalTag.URL, REGEX_URL_AS_IS),
    _category(InternalTag.HTTP, REGEX_URL_HTTP),
    _category(InternalTag.FILE, REGEX_URL_FILE),
    _category(InternalTag.VOIP, REGEX_URL_VOIP),
    _category(InternalTag.EMAIL, REGEX_EMAIL),
    _category(InternalTag.NEWS_MAN, REGEX_NEWS_MAN),
)


@dataclass(frozen=True)
class BuiltinEntry:
    matcher: CompiledMatcher
    category: BuiltinCategory

    @property
    def tag(self) -> InternalTag:
        return self.category.tag

    @property
    def public_tag(self) -> PublicTag:
        return self.category.public_tag

    def transform(self, raw: str) -> Tuple[str, PublicTag]:
        return self.category.transform(raw), self.category.public_tag


class BuiltinRegistry:
    def __init__(self, entries: Sequence[BuiltinEntry] = ()):
        self._entries: Tuple[BuiltinEntry, ...] = tuple(entries)
        self._by_tag: Dict[InternalTag, BuiltinEntry] = {}
        for entry in self._entries:
            self._by_tag.setdefault(entry.tag, entry)
        self._closed = False

    @classmethod
    def build(
        cls,
        settings: Optional[MatcherSettings] = None,
        logger: Optional[RichLogger] = None,
        categories: Sequence[BuiltinCategory] = CATEGORIES,
        library: FragmentLibrary = LIBRARY,
    ) -> "BuiltinRegistry":
        settings = settings or MatcherSettings()
        logger = (logger or RichLogger(verbose=settings.verbose)).child("builtins")
        entries = []
        for category in categories:
            try:
                matcher = compile_grammar(category.grammar, Purpose.SCAN, library=library, settings=settings)
            except GrammarCompileError as exc:
                logger.error(f"Failed to compile builtin regex {category.tag.name}: {exc}")
                continue
            accelerate(matcher, logger)
            entries.append(BuiltinEntry(matcher=matcher, category=category))
        logger.debug(f"Compiled {len(entries)}/{len(categories)} builtin matchers")
        return cls(entries)

    def __iter__(self) -> Iterator[BuiltinEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def __enter__(self) -> "BuiltinRegistry":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def entries(self) -> Tuple[BuiltinEntry, ...]:
        return self._entries

    def find_by_tag(self, tag: InternalTag) -> Optional[BuiltinEntry]:
        return self._by_tag.get(tag)

    def transform(self, raw: str, tag: InternalTag) -> Tuple[str, PublicTag]:
        entry = self._by_tag.get(tag)
        if entry is not None:
            return entry.transform(raw)
        return TRANSFORMS[tag](raw), PUBLIC_TAGS[tag]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for entry in self._entries:
            entry.matcher.release()


class LazyRegistry:
    def __init__(self, settings: Optional[MatcherSettings] = None, logger: Optional[RichLogger] = None):
        self.settings = settings
        self.logger = logger
        self._lock = threading.Lock()
        self._registry: Optional[BuiltinRegistry] = None

    @property
    def built(self) -> bool:
        return self._registry is not None

    def get(self) -> BuiltinRegistry:
        registry = self._registry
        if registry is not None:
            return registry
        with self._lock:
            if self._registry is None:
                self._registry = BuiltinRegistry.build(settings=self.settings, logger=self.logger)
            return self._registry

    def close(self) -> None:
        with self._lock:
            registry, self._registry = self._registry, None
        if registry is not None:
            registry.close()
