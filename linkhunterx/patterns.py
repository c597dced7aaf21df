from __future__ import annotations

from typing import Tuple

from .grammar import CAPTURE, INLINE, FragmentLibrary, Grammar

LIBRARY = FragmentLibrary()
_define = LIBRARY.define

# Letters, combining marks and digits of any script
ALNUM = r"\p{L}\p{M}\p{N}"
HEX = "0-9A-Fa-f"

# Set when the character before the match is an apostrophe
APOS_START = _define("APOS_START", r"(?<=')", CAPTURE)

SCHEME = _define("SCHEME", r"(?i:news|telnet|nntp|https?|ftps?|sftp|webcal)", INLINE)

USER = _define("USER", rf"[-+.{ALNUM}]+", INLINE)
PASS = _define("PASS", rf"(?::[-{ALNUM}" + ",?;.:/!%$^*&~\"#']*)?", INLINE)
USERPASS = _define("USERPASS", f"(?:{USER}{PASS}@)?", INLINE)

# ASCII alnum or dash, or any graphical non-ASCII character
HOSTNAME_SEGMENT_CHAR = _define(
    "HOSTNAME_SEGMENT_CHAR",
    r"[-A-Za-z0-9]|[^\x00-\x7F\p{Z}\p{C}]",
    INLINE,
)
SEG = HOSTNAME_SEGMENT_CHAR

# The last segment needs a non-digit: "12.ab" is a hostname, "12.34" is not
HOSTNAME1 = _define("HOSTNAME1", rf"(?:{SEG}+\.)*{SEG}*(?![0-9]){SEG}+", INLINE)
HOSTNAME2 = _define("HOSTNAME2", rf"(?:{SEG}+\.)+{HOSTNAME1}", INLINE)

# 0-255, never a prefix of a longer number
S4 = _define("S4", r"(?:25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9][0-9]|[0-9])(?![0-9])")
IPV4 = _define("IPV4", rf"(?:{S4}\.){{3}}{S4}")

S6 = _define("S6", rf"[{HEX}]{{1,4}}")
CS6 = _define("CS6", f":{S6}")
S6C = _define("S6C", f"{S6}:")

IPV6_NULL = _define("IPV6_NULL", "::", INLINE)
IPV6_LEFT = _define("IPV6_LEFT", f":{CS6}{{1,7}}", INLINE)
# The lookahead caps the total number of colons when "::" is in the middle
IPV6_MID = _define("IPV6_MID", rf"(?!(?:[{HEX}]*:){{8}}){S6C}{{1,6}}{CS6}{{1,6}}", INLINE)
IPV6_RIGHT = _define("IPV6_RIGHT", f"{S6C}{{1,7}}:", INLINE)
IPV6_FULL = _define("IPV6_FULL", f"{S6C}{{7}}{S6}", INLINE)

# Same shapes, leaving the last 32 bits for a dotted IPv4 address
IPV6V4_FULL = _define("IPV6V4_FULL", f"{S6C}{{6}}", INLINE)
IPV6V4_LEFT = _define("IPV6V4_LEFT", f"::{S6C}{{0,5}}", INLINE)
IPV6V4_MID = _define("IPV6V4_MID", rf"(?!(?:[{HEX}]*:){{7}}){S6C}{{1,4}}{CS6}{{1,4}}:", INLINE)
IPV6V4_RIGHT = _define("IPV6V4_RIGHT", f"{S6C}{{1,5}}:", INLINE)

IPV6 = _define(
    "IPV6",
    f"(?:{IPV6_NULL}|{IPV6_LEFT}|{IPV6_MID}|{IPV6_RIGHT}|{IPV6_FULL}"
    f"|(?:{IPV6V4_FULL}|{IPV6V4_LEFT}|{IPV6V4_MID}|{IPV6V4_RIGHT}){IPV4})"
    rf"(?![.:{HEX}])",
)

URL_HOST = _define("URL_HOST", rf"{HOSTNAME1}|{IPV4}|\[{IPV6}\]", INLINE)
EMAIL_HOST = _define("EMAIL_HOST", rf"{HOSTNAME2}|\[(?:{IPV4}|{IPV6})\]", INLINE)

# 1-65535, never a prefix of a longer number
N_1_65535 = _define(
    "N_1_65535",
    r"(?:6553[0-5]|655[0-2][0-9]|65[0-4][0-9]{2}|6[0-4][0-9]{3}|[1-5][0-9]{4}|[1-9][0-9]{0,3})(?![0-9])",
    INLINE,
)
PORT = _define("PORT", f"(?::{N_1_65535})?", INLINE)

# Brackets are handled by PATH_INNER/PATH so they only appear balanced
PATH_CHAR = _define("PATH_CHAR", rf"[-{ALNUM}_$.+!*,:;@&=?/~#|%']", INLINE)
# Characters a path may end on; the apostrophe only if the match does not follow one
PATH_TERM = _define("PATH_TERM", rf"[-{ALNUM}_$+*:@&=/~#|%']", INLINE)
PATH_TERM_NO_APOS = _define("PATH_TERM_NO_APOS", rf"[-{ALNUM}_$+*:@&=/~#|%]", INLINE)

PATH_INNER = _define(
    "PATH_INNER",
    rf"(?:{PATH_CHAR}*(?:\((?&PATH_INNER)\)|\[(?&PATH_INNER)\]))*{PATH_CHAR}*",
)
PATH = _define(
    "PATH",
    rf"(?:{PATH_CHAR}*(?:\({PATH_INNER}\)|\[{PATH_INNER}\]))*"
    rf"(?:{PATH_CHAR}*(?(APOS_START){PATH_TERM_NO_APOS}|{PATH_TERM}))?",
)

URLPATH = _define("URLPATH", f"(?:/{PATH})?", INLINE)
VOIP_PATH = _define("VOIP_PATH", f"(?:[;?]{PATH})?", INLINE)

NEWS_MAN_CHAR = _define("NEWS_MAN_CHAR", rf"[-{ALNUM}" + "^_{|}~!\"#$%&'()*+,./;:=?`]", INLINE)


def compose_url_as_is() -> Grammar:
    return Grammar("URL_AS_IS", f"{SCHEME}://{USERPASS}{URL_HOST}{PORT}{URLPATH}", trigger="://")


def compose_url_http() -> Grammar:
    # Not inside a longer hostname ("abc.www.foo"), and starting with www or ftp
    return Grammar(
        "URL_HTTP",
        f"(?<!{SEG}|[.])(?=(?i:www|ftp)){HOSTNAME1}{PORT}{URLPATH}",
        trigger="(?i:www|ftp)",
    )


def compose_url_file() -> Grammar:
    return Grammar("URL_FILE", f"(?i:file:/(?:/(?:{HOSTNAME1})?/)?(?!/)){PATH}", trigger="(?i:file:/)")


def compose_url_voip() -> Grammar:
    return Grammar(
        "URL_VOIP",
        f"(?i:h323:|sips?:){USERPASS}{URL_HOST}{PORT}{VOIP_PATH}",
        trigger="(?i:h323:|sips?:)",
    )


def compose_email() -> Grammar:
    return Grammar("EMAIL", f"(?i:mailto:)?{USER}@{EMAIL_HOST}", trigger="@")


def compose_news_man() -> Grammar:
    return Grammar("NEWS_MAN", f"(?i:news:|man:|info:){NEWS_MAN_CHAR}+", trigger="(?i:news:|man:|info:)")


REGEX_URL_AS_IS = compose_url_as_is()
REGEX_URL_HTTP = compose_url_http()
REGEX_URL_FILE = compose_url_file()
REGEX_URL_VOIP = compose_url_voip()
REGEX_EMAIL = compose_email()
REGEX_NEWS_MAN = compose_news_man()

BUILTIN_GRAMMARS: Tuple[Grammar, ...] = (
    REGEX_URL_AS_IS,
    REGEX_URL_HTTP,
    REGEX_URL_FILE,
    REGEX_URL_VOIP,
    REGEX_EMAIL,
    REGEX_NEWS_MAN,
)
