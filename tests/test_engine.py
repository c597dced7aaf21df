"""
Tests for the match engine: anchoring, offsets, encodings and scanning.
"""

import pytest

from conftest import logged_text, make_logger
from linkhunterx.compiler import Purpose, compile_grammar, compile_pattern
from linkhunterx.config import MatcherSettings
from linkhunterx.engine import Subject, iter_matches, match, match_entry, scan_text
from linkhunterx.models import InternalTag, PublicTag
from linkhunterx.patterns import REGEX_EMAIL, REGEX_URL_AS_IS


@pytest.fixture(scope="module")
def url_matcher():
    return compile_grammar(REGEX_URL_AS_IS)


@pytest.fixture(scope="module")
def email_matcher():
    return compile_grammar(REGEX_EMAIL)


# =============================================================================
# ANCHORING
# =============================================================================

class TestAnchoring:
    def test_free_search(self, url_matcher):
        result = match(url_matcher, "Visit http://example.com today")
        assert result.text == "http://example.com"
        assert (result.start, result.end) == (6, 24)
        assert not result.partial

    def test_anchored_requires_start(self, url_matcher):
        assert match(url_matcher, "Visit http://example.com", anchored=True) is None
        assert match(url_matcher, "Visit http://example.com", anchored=True, pos=6).text == "http://example.com"

    def test_pos_and_endpos(self, url_matcher):
        subject = "http://a.com http://b.com"
        assert match(url_matcher, subject, pos=1).text == "http://b.com"
        assert match(url_matcher, subject, endpos=10).text == "http://a.c"

    def test_validate_consumes_subject(self):
        matcher = compile_grammar(REGEX_URL_AS_IS, Purpose.VALIDATE)
        assert match(matcher, "http://example.com").text == "http://example.com"
        assert match(matcher, "http://example.com.") is None
        assert match(matcher, "see http://example.com") is None

    def test_validate_can_search(self):
        matcher = compile_grammar(REGEX_URL_AS_IS, Purpose.VALIDATE)
        assert match(matcher, "see http://example.com.", anchored=False).text == "http://example.com"

    def test_empty_span(self):
        matcher = compile_pattern("x*")
        result = match(matcher, "abc")
        assert result is not None
        assert result.empty
        assert (result.start, result.end, result.text) == (0, 0, "")


# =============================================================================
# SUBJECT ENCODING
# =============================================================================

class TestSubjects:
    def test_bytes_offsets(self, url_matcher):
        subject = "café http://example.com".encode("utf-8")
        result = match(url_matcher, subject)
        assert result.text == "http://example.com"
        assert (result.start, result.end) == (6, 24)
        assert subject[result.start:result.end] == b"http://example.com"

    def test_bytes_pos_is_in_bytes(self, url_matcher):
        subject = "é http://a.com".encode("utf-8")
        assert match(url_matcher, subject, anchored=True, pos=3).start == 3

    def test_malformed_utf8_is_no_match(self, url_matcher):
        assert match(url_matcher, b"http://example.com \xff") is None

    def test_malformed_utf8_without_check(self, url_matcher):
        subject = b"\xff http://example.com"
        result = match(url_matcher, subject, no_utf_check=True)
        assert result.text == "http://example.com"
        assert (result.start, result.end) == (2, 20)

    def test_invalid_subject_type(self, url_matcher):
        with pytest.raises(TypeError):
            match(url_matcher, 42)

    def test_subject_mapping(self):
        subj = Subject.from_native("ñx".encode("utf-8"))
        assert subj.text == "ñx"
        assert subj.to_index(2) == 1
        assert subj.to_native(1) == 2
        assert subj.bounds(0, None) == (0, 2)


# =============================================================================
# PARTIAL MATCHING
# =============================================================================

class TestPartial:
    def test_truncated_trigger(self, url_matcher):
        assert match(url_matcher, "see http:/") is None
        result = match(url_matcher, "see http:/", partial=True)
        assert result is not None
        assert result.partial
        assert result.text == "http:/"


# =============================================================================
# TIMEOUTS
# =============================================================================

class _TimingOutPattern:
    def search(self, *args, **kwargs):
        raise TimeoutError("regex timed out")

    match = fullmatch = search


class TestTimeout:
    def test_timeout_is_no_match(self, monkeypatch):
        logger = make_logger()
        matcher = compile_pattern("abc", name="slow", settings=MatcherSettings(match_timeout=0.001))
        monkeypatch.setattr(matcher, "acquire", lambda: _TimingOutPattern())
        assert match(matcher, "xxabc", logger=logger) is None
        assert "slow timed out" in logged_text(logger)
        assert logger.counts["WARN"] == 1

    def test_timeout_is_passed_to_engine(self, monkeypatch):
        seen = {}

        class _Recording:
            def search(self, *args, **kwargs):
                seen.update(kwargs)
                return None

        matcher = compile_pattern("abc", settings=MatcherSettings(match_timeout=0.25, release_gil=True))
        monkeypatch.setattr(matcher, "acquire", lambda: _Recording())
        assert match(matcher, "abc") is None
        assert seen["timeout"] == 0.25
        assert seen["concurrent"] is True


# =============================================================================
# ITERATION AND REGISTRY SCANS
# =============================================================================

class TestIterMatches:
    def test_successive_matches(self, email_matcher):
        found = [m.text for m in iter_matches(email_matcher, "a@b.com, c@d.org and e@f")]
        assert found == ["a@b.com", "c@d.org"]

    def test_empty_matches_advance(self):
        matcher = compile_pattern("x*")
        spans = [(m.start, m.end) for m in iter_matches(matcher, "axxb")]
        assert spans == [(0, 0), (1, 3), (3, 3), (4, 4)]


class TestMatchEntry:
    def test_result_carries_public_tag(self, registry):
        entry = registry.find_by_tag(InternalTag.EMAIL)
        result = match_entry(entry, "write to a@b.com")
        assert result.text == "a@b.com"
        assert result.public_tag is PublicTag.URI

    def test_plain_match_has_no_tag(self, email_matcher):
        assert match(email_matcher, "a@b.com").public_tag is None

    def test_no_match(self, registry):
        entry = registry.find_by_tag(InternalTag.URL)
        assert match_entry(entry, "nothing here") is None


class TestScanText:
    def test_mixed_text(self, registry):
        text = "Visit www.example.com or mail joe@example.org, see http://x.org/a."
        found = [(r.internal_tag, r.value) for r in scan_text(registry, text)]
        assert found == [
            (InternalTag.HTTP, "http://www.example.com"),
            (InternalTag.EMAIL, "mailto:joe@example.org"),
            (InternalTag.URL, "http://x.org/a"),
        ]

    def test_all_public_tags_are_uri(self, registry):
        text = "file:///etc sip:bob@host news:comp.lang"
        results = list(scan_text(registry, text))
        assert [r.internal_tag for r in results] == [InternalTag.FILE, InternalTag.VOIP, InternalTag.NEWS_MAN]
        assert {r.public_tag for r in results} == {PublicTag.URI}

    def test_non_overlapping(self, registry):
        results = list(scan_text(registry, "http://joe@example.com"))
        assert len(results) == 1
        assert results[0].internal_tag is InternalTag.URL

    def test_tie_goes_to_first_registered(self, registry):
        results = list(scan_text(registry, "news://host/path"))
        assert len(results) == 1
        assert results[0].internal_tag is InternalTag.URL
        assert results[0].value == "news://host/path"

    def test_raw_and_offsets(self, registry):
        text = "ping foo@bar.com"
        (rec,) = scan_text(registry, text)
        assert rec.raw == "foo@bar.com"
        assert text[rec.start:rec.end] == rec.raw

    def test_bytes_scan(self, registry):
        data = "→ www.example.com".encode("utf-8")
        (rec,) = scan_text(registry, data)
        assert data[rec.start:rec.end] == b"www.example.com"

    def test_lookbehind_sees_text_before_pos(self, registry):
        assert list(scan_text(registry, "abc.www.foo.bar", pos=4)) == []
        (rec,) = scan_text(registry, "abc www.foo.bar", pos=4)
        assert (rec.start, rec.value) == (4, "http://www.foo.bar")

    def test_endpos_bounds_the_scan(self, registry):
        (rec,) = scan_text(registry, "a@b.com c@d.org", endpos=7)
        assert rec.raw == "a@b.com"

    def test_nothing_found(self, registry):
        assert list(scan_text(registry, "plain words only")) == []
