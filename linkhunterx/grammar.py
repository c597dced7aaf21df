from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

INLINE = "inline"
SUBROUTINE = "subroutine"
CAPTURE = "capture"
FRAGMENT_KINDS = (INLINE, SUBROUTINE, CAPTURE)

NAME_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"
CALL_RX = re.compile(rf"\(\?&({NAME_PATTERN})\)")
CONDITION_RX = re.compile(rf"\(\?\(({NAME_PATTERN})\)")
NAME_RX = re.compile(rf"^{NAME_PATTERN}$")


class GrammarError(ValueError):
    pass


def _unique(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(names))


def call(name: str) -> str:
    return f"(?:(?&{name}))"


@dataclass(frozen=True)
class Fragment:
    name: str
    body: str
    kind: str = SUBROUTINE

    def calls(self) -> Tuple[str, ...]:
        return _unique(CALL_RX.findall(self.body))

    def conditions(self) -> Tuple[str, ...]:
        return _unique(CONDITION_RX.findall(self.body))

    def references(self) -> Tuple[str, ...]:
        return _unique(self.calls() + self.conditions())

    @property
    def ref(self) -> str:
        return call(self.name)


@dataclass(frozen=True)
class Grammar:
    name: str
    expression: str
    trigger: Optional[str] = None


class FragmentLibrary:
    def __init__(self, fragments: Iterable[Fragment] = ()):
        self._fragments: Dict[str, Fragment] = {}
        for fragment in fragments:
            self.add(fragment)

    def __contains__(self, name: object) -> bool:
        return name in self._fragments

    def __len__(self) -> int:
        return len(self._fragments)

    def names(self) -> List[str]:
        return list(self._fragments)

    def add(self, fragment: Fragment) -> Fragment:
        if not NAME_RX.match(fragment.name):
            raise GrammarError(f"invalid fragment name: {fragment.name!r}")
        if fragment.kind not in FRAGMENT_KINDS:
            raise GrammarError(f"fragment {fragment.name} has unknown kind {fragment.kind!r}")
        if fragment.name in self._fragments:
            raise GrammarError(f"fragment {fragment.name} is already defined")
        self._fragments[fragment.name] = fragment
        return fragment

    def define(self, name: str, body: str, kind: str = SUBROUTINE) -> str:
        return self.add(Fragment(name, body, kind)).ref

    def get(self, name: str) -> Fragment:
        try:
            return self._fragments[name]
        except KeyError:
            raise GrammarError(f"undefined fragment: {name}") from None

    def extend(self, other: "FragmentLibrary") -> "FragmentLibrary":
        merged = FragmentLibrary(self._fragments.values())
        for fragment in other._fragments.values():
            merged.add(fragment)
        return merged

    def _check_reference(self, owner: str, ref: str, as_condition: bool) -> Fragment:
        target = self._fragments.get(ref)
        if target is None:
            raise GrammarError(f"{owner} references undefined fragment {ref}")
        if as_condition and target.kind != CAPTURE:
            raise GrammarError(f"{owner} tests {ref}, which is not a capture fragment")
        if not as_condition and target.kind == CAPTURE:
            raise GrammarError(f"{owner} calls {ref}, which is a capture fragment")
        return target

    def closure(self, expression: str, owner: str = "grammar") -> List[Fragment]:
        # reachable fragments, dependencies first
        order: List[Fragment] = []
        done: Set[str] = set()

        def visit(fragment: Fragment, path: Tuple[str, ...]) -> None:
            if fragment.name in done:
                return
            if fragment.name in path:
                cycle = path[path.index(fragment.name):] + (fragment.name,)
                raise GrammarError("cyclic fragment reference: " + " -> ".join(cycle))
            path = path + (fragment.name,)
            for ref in fragment.calls():
                target = self._check_reference(fragment.name, ref, as_condition=False)
                # a subroutine may recurse into itself; any other loop is a cycle
                if ref == fragment.name and fragment.kind == SUBROUTINE:
                    continue
                visit(target, path)
            for ref in fragment.conditions():
                visit(self._check_reference(fragment.name, ref, as_condition=True), path)
            done.add(fragment.name)
            order.append(fragment)

        for ref in _unique(CALL_RX.findall(expression)):
            visit(self._check_reference(owner, ref, as_condition=False), ())
        for ref in _unique(CONDITION_RX.findall(expression)):
            visit(self._check_reference(owner, ref, as_condition=True), ())
        return order

    def validate(self) -> None:
        for fragment in self._fragments.values():
            # capture fragments are only reachable through a condition
            if fragment.kind == CAPTURE:
                self.closure(f"(?({fragment.name})|)", owner=fragment.name)
            else:
                self.closure(fragment.ref, owner=fragment.name)

    def _expand(self, text: str) -> str:
        def replace(m: "re.Match[str]") -> str:
            fragment = self._fragments[m.group(1)]
            if fragment.kind == INLINE:
                return f"(?:{self._expand(fragment.body)})"
            return m.group(0)

        return CALL_RX.sub(replace, text)

    def render(self, grammar: Union[Grammar, str]) -> str:
        if isinstance(grammar, Grammar):
            expression, owner = grammar.expression, grammar.name
        else:
            expression, owner = grammar, "grammar"
        fragments = self.closure(expression, owner=owner)

        parts: List[str] = []
        for fragment in fragments:
            if fragment.kind == CAPTURE:
                parts.append(f"(?:(?P<{fragment.name}>{self._expand(fragment.body)})|)")
        defines = "".join(
            f"(?P<{fragment.name}>{self._expand(fragment.body)})"
            for fragment in fragments
            if fragment.kind == SUBROUTINE
        )
        if defines:
            parts.append(f"(?(DEFINE){defines})")
        parts.append(self._expand(expression))
        return "".join(parts)
