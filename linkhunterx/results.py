from __future__ import annotations

import threading
from typing import Dict, List, Set

from .models import Finding, Occurrence
from .normalize import stable_key


class ResultStore:
    def __init__(self):
        self._lock = threading.Lock()
        self.unique: Dict[str, Set[str]] = {}
        self.first_seen: Dict[str, Dict[str, Occurrence]] = {}
        self.count_total: Dict[str, int] = {}
        self.count_unique: Dict[str, int] = {}
        self.records: Dict[str, Dict[str, Finding]] = {}

    def add(self, finding: Finding) -> bool:
        with self._lock:
            self.count_total[finding.category] = self.count_total.get(finding.category, 0) + 1
            catset = self.unique.setdefault(finding.category, set())
            key = stable_key(finding.category, finding.value)
            if key in catset:
                return False
            catset.add(key)
            self.count_unique[finding.category] = self.count_unique.get(finding.category, 0) + 1
            self.first_seen.setdefault(finding.category, {})[key] = finding.occurrence
            self.records.setdefault(finding.category, {})[key] = finding
            return True

    def findings(self, category: str | None = None) -> List[Finding]:
        with self._lock:
            if category is not None:
                return list(self.records.get(category, {}).values())
            out: List[Finding] = []
            for records in self.records.values():
                out.extend(records.values())
            return out

    def values(self, category: str) -> List[str]:
        return [f.value for f in self.findings(category)]

    def summary(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {
                cat: {"total": self.count_total.get(cat, 0), "unique": self.count_unique.get(cat, 0)}
                for cat in sorted(self.count_total)
            }
