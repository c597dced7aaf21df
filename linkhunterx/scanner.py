from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from . import engine
from .config import MatcherSettings
from .console import RichLogger
from .models import Finding, Occurrence, Recognized
from .registry import BuiltinRegistry
from .results import ResultStore
from .text_utils import snippet_around


class Scanner:
    def __init__(
        self,
        registry: BuiltinRegistry,
        store: ResultStore,
        logger: RichLogger,
        settings: Optional[MatcherSettings] = None,
    ):
        self.registry = registry
        self.store = store
        self.logger = logger
        self.settings = settings or MatcherSettings()
        self.max_subject_len = max(1024, self.settings.max_subject_len)
        self.overlap = max(0, min(self.settings.chunk_overlap, self.max_subject_len - 1))

    def iter_recognized(self, text: str) -> Iterator[Recognized]:
        size = self.max_subject_len
        width = size
        start = 0
        # end of the last emitted match; later windows may see its tail again
        floor = 0
        while True:
            end = min(len(text), start + width)
            last = end == len(text)
            resume = max(start + 1, end - self.overlap)
            grow = False
            for rec in engine.scan_text(
                self.registry, text, pos=start, endpos=end, partial=not last, logger=self.logger
            ):
                if rec.start < floor:
                    continue
                if not last:
                    if rec.start >= resume:
                        break
                    # a match running into the window end is found whole later
                    if rec.partial or rec.end >= end:
                        if rec.start == start:
                            grow = True
                        else:
                            resume = rec.start
                        break
                yield rec
                floor = rec.end
            if last:
                return
            if grow:
                width *= 2
                continue
            width = size
            start = resume

    def scan_text(self, text: str, source: str = "<text>", line_no: int = 1) -> Dict[str, int]:
        stats = {"matches": 0, "new_findings": 0}
        for rec in self.iter_recognized(text):
            stats["matches"] += 1
            finding = Finding(
                tag=rec.public_tag,
                internal_tag=rec.internal_tag,
                value=rec.value,
                occurrence=Occurrence(source, line_no, snippet_around(text, rec.start, rec.end)),
                start=rec.start,
                end=rec.end,
            )
            if self.store.add(finding):
                stats["new_findings"] += 1
        return stats

    def scan_lines(self, lines: Iterable[str], source: str = "<lines>") -> Dict[str, int]:
        stats = {"lines": 0, "matches": 0, "new_findings": 0, "skipped": 0}
        for line_no, line in enumerate(lines, start=1):
            stats["lines"] += 1
            raw = line.rstrip("\n\r")
            if not raw:
                continue
            try:
                line_stats = self.scan_text(raw, source, line_no)
            except Exception as e:
                self.logger.warn(f"Failed to scan {source}:{line_no}: {e}")
                stats["skipped"] += 1
                continue
            stats["matches"] += line_stats["matches"]
            stats["new_findings"] += line_stats["new_findings"]
        return stats

    def _scan_subject(self, source: str, text: str) -> Dict[str, int]:
        return self.scan_lines(text.splitlines(), source)

    def scan_many(self, subjects: Iterable[Tuple[str, str]], threads: int = 4) -> Dict[str, int]:
        tasks: List[Tuple[str, str]] = list(subjects)
        stats = {"subjects": len(tasks), "skipped": 0, "matches": 0, "new_findings": 0}
        if not tasks:
            return stats

        with ThreadPoolExecutor(max_workers=max(1, threads)) as executor:
            future_map = {
                executor.submit(self._scan_subject, source, text): source for source, text in tasks
            }
            for future in as_completed(future_map):
                source = future_map[future]
                try:
                    subject_stats = future.result()
                except Exception as exc:
                    self.logger.warn(f"Failed to scan {source}: {exc}")
                    stats["skipped"] += 1
                    continue
                stats["skipped"] += subject_stats.get("skipped", 0)
                stats["matches"] += subject_stats.get("matches", 0)
                stats["new_findings"] += subject_stats.get("new_findings", 0)
                if subject_stats.get("new_findings", 0) > 0:
                    self.logger.debug(f"Hit {source}: new={subject_stats['new_findings']}")

        self.logger.done(f"Scanned {stats['subjects']} subjects, {stats['new_findings']} new findings")
        return stats
