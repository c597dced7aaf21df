from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_MATCH_TIMEOUT_MS = 100
DEFAULT_MAX_SUBJECT_LEN = 200000
DEFAULT_CHUNK_OVERLAP = 256

ENV_PREFIX = "LINKHUNTERX_"
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class MatcherSettings:
    match_timeout: float = DEFAULT_MATCH_TIMEOUT_MS / 1000.0
    max_subject_len: int = DEFAULT_MAX_SUBJECT_LEN
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    release_gil: bool = False
    verbose: bool = False


def _env_value(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(ENV_PREFIX + key, "")
    value = value.strip()
    return value or None


def _env_int(env: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    value = _env_value(env, key)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = _env_value(env, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> MatcherSettings:
    env = os.environ if env is None else env
    timeout_ms = _env_int(env, "MATCH_TIMEOUT_MS", DEFAULT_MATCH_TIMEOUT_MS, minimum=1)
    max_len = _env_int(env, "MAX_SUBJECT_LEN", DEFAULT_MAX_SUBJECT_LEN, minimum=1024)
    overlap = _env_int(env, "CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP)
    if overlap >= max_len:
        overlap = DEFAULT_CHUNK_OVERLAP
    return MatcherSettings(
        match_timeout=timeout_ms / 1000.0,
        max_subject_len=max_len,
        chunk_overlap=overlap,
        release_gil=_env_bool(env, "RELEASE_GIL", False),
        verbose=_env_bool(env, "VERBOSE", False),
    )
