from __future__ import annotations

import enum
import threading
from typing import Dict, FrozenSet, Optional

import regex  # timeout support and (?(DEFINE)...) subroutines

from .config import MatcherSettings
from .console import RichLogger
from .grammar import FragmentLibrary, Grammar, GrammarError
from .patterns import LIBRARY

DEFAULT_COMPILE_FLAGS = regex.UNICODE | regex.MULTILINE


class GrammarCompileError(RuntimeError):
    pass


class AccelerationError(RuntimeError):
    pass


class Purpose(enum.Enum):
    SCAN = "scan"
    VALIDATE = "validate"


class Acceleration(enum.Enum):
    COMPLETE = "complete"
    PARTIAL_SOFT = "partial-soft"


class CompiledMatcher:
    def __init__(
        self,
        pattern: regex.Pattern,
        purpose: Purpose,
        flags: int,
        name: str = "",
        trigger: Optional[str] = None,
        settings: Optional[MatcherSettings] = None,
    ):
        self.name = name or "pattern"
        self.purpose = purpose
        self.flags = flags
        self.trigger = trigger
        self.settings = settings or MatcherSettings()
        self._pattern: Optional[regex.Pattern] = pattern
        self._prefilters: Dict[Acceleration, regex.Pattern] = {}
        self._refs = 1
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"CompiledMatcher({self.name!r}, purpose={self.purpose.value}, refs={self._refs})"

    @property
    def multiline(self) -> bool:
        return bool(self.flags & regex.MULTILINE)

    @property
    def released(self) -> bool:
        return self._pattern is None

    @property
    def source(self) -> str:
        return self.acquire().pattern

    @property
    def accelerations(self) -> FrozenSet[Acceleration]:
        return frozenset(self._prefilters)

    def has_purpose(self, purpose: Purpose) -> bool:
        return self.purpose is purpose

    def acquire(self) -> regex.Pattern:
        pattern = self._pattern
        if pattern is None:
            raise ValueError(f"matcher {self.name} has been released")
        return pattern

    def ref(self) -> "CompiledMatcher":
        with self._lock:
            if self._pattern is None:
                raise ValueError(f"matcher {self.name} has been released")
            self._refs += 1
        return self

    def release(self) -> None:
        with self._lock:
            if self._refs <= 0:
                return
            self._refs -= 1
            if self._refs == 0:
                self._pattern = None
                self._prefilters = {}

    def jit(self, mode: Acceleration) -> None:
        if not self.trigger:
            raise AccelerationError(f"{self.name} has no trigger literal")
        partial = mode is Acceleration.PARTIAL_SOFT
        try:
            prefilter = regex.compile(self.trigger, self.flags)
            prefilter.search("", partial=partial, timeout=self.settings.match_timeout)
        except regex.error as exc:
            raise AccelerationError(f"{self.name} trigger does not compile: {exc}") from exc
        except TimeoutError as exc:
            raise AccelerationError(f"{self.name} trigger probe timed out") from exc
        with self._lock:
            if self._pattern is None:
                raise AccelerationError(f"{self.name} has been released")
            prefilters = dict(self._prefilters)
            prefilters[mode] = prefilter
            self._prefilters = prefilters

    def may_match(self, text: str, pos: int, endpos: int, partial: bool = False) -> bool:
        mode = Acceleration.PARTIAL_SOFT if partial else Acceleration.COMPLETE
        prefilter = self._prefilters.get(mode)
        if prefilter is None:
            return True
        return prefilter.search(text, pos, endpos, partial=partial, timeout=self.settings.match_timeout) is not None


def compile_pattern(
    source: str,
    purpose: Purpose = Purpose.SCAN,
    flags: int = DEFAULT_COMPILE_FLAGS,
    name: str = "",
    trigger: Optional[str] = None,
    settings: Optional[MatcherSettings] = None,
) -> CompiledMatcher:
    try:
        pattern = regex.compile(source, flags)
    except regex.error as exc:
        raise GrammarCompileError(f"{name or 'pattern'}: {exc}") from exc
    return CompiledMatcher(pattern, purpose, flags, name=name, trigger=trigger, settings=settings)


def compile_grammar(
    grammar: Grammar,
    purpose: Purpose = Purpose.SCAN,
    library: Optional[FragmentLibrary] = None,
    flags: int = DEFAULT_COMPILE_FLAGS,
    settings: Optional[MatcherSettings] = None,
) -> CompiledMatcher:
    library = LIBRARY if library is None else library
    try:
        source = library.render(grammar)
    except GrammarError as exc:
        raise GrammarCompileError(f"{grammar.name}: {exc}") from exc
    return compile_pattern(
        source,
        purpose,
        flags,
        name=grammar.name,
        trigger=grammar.trigger,
        settings=settings,
    )


def accelerate(matcher: CompiledMatcher, logger: RichLogger) -> FrozenSet[Acceleration]:
    for mode in (Acceleration.COMPLETE, Acceleration.PARTIAL_SOFT):
        try:
            matcher.jit(mode)
        except AccelerationError as exc:
            logger.warn(f"Failed to {mode.value} accelerate {matcher.name}: {exc}")
    return matcher.accelerations


def unicode_supported() -> bool:
    try:
        return regex.fullmatch(r"[\p{L}\p{M}]+", "déjàvu") is not None
    except regex.error:
        return False
