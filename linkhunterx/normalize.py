from __future__ import annotations

import hashlib
from typing import Callable, Dict, Tuple

from .models import InternalTag, PublicTag

HTTP_PREFIX = "http://"
MAILTO_PREFIX = "mailto:"


def keep_as_is(raw: str) -> str:
    return raw


def prefix_http(raw: str) -> str:
    return f"{HTTP_PREFIX}{raw}"


def prefix_mailto(raw: str) -> str:
    if raw[: len(MAILTO_PREFIX)].lower() == MAILTO_PREFIX:
        return raw
    return f"{MAILTO_PREFIX}{raw}"


TRANSFORMS: Dict[InternalTag, Callable[[str], str]] = {
    InternalTag.URL: keep_as_is,
    InternalTag.HTTP: prefix_http,
    InternalTag.FILE: keep_as_is,
    InternalTag.VOIP: keep_as_is,
    InternalTag.EMAIL: prefix_mailto,
    InternalTag.NEWS_MAN: keep_as_is,
}

PUBLIC_TAGS: Dict[InternalTag, PublicTag] = {tag: PublicTag.URI for tag in InternalTag}


def canonicalize(raw: str, tag: InternalTag) -> Tuple[str, PublicTag]:
    return TRANSFORMS[tag](raw), PUBLIC_TAGS[tag]


def stable_key(category: str, value: str) -> str:
    h = hashlib.blake2b(digest_size=16)
    h.update(category.encode("utf-8", errors="surrogateescape"))
    h.update(b"\x00")
    h.update(value.encode("utf-8", errors="surrogateescape"))
    return h.hexdigest()
