from __future__ import annotations


def trim_snippet(text: str, max_len: int = 240) -> str:
    value = text.strip()
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


def snippet_around(text: str, start: int, end: int, context: int = 60, max_len: int = 240) -> str:
    lo = max(0, start - context)
    hi = min(len(text), end + context)
    return trim_snippet(text[lo:hi], max_len=max_len)
