import re

import pytest

from app.features.scan.schemas.scan import MatchType
from app.features.scan.services.extraction.extractor_service import ExtractorService
from app.features.scan.services.extraction.html_document import HtmlDocument

TIMESTAMP = "20050101000000"
ARCHIVE_URL = f"https://web.archive.org/web/{TIMESTAMP}/http://example.com/"


def extract(html, keyword):
    return ExtractorService.extract(html, keyword, TIMESTAMP, ARCHIVE_URL)


class TestExtractorService:
    def test_matches_each_zone_in_order(self):
        html = """
        <html>
          <head><script>var token = "needle";</script></head>
          <body>
            <p>Find the needle here</p>
            <!-- needle in comment -->
          </body>
        </html>
        """

        matches = extract(html, "needle")

        assert [m.match_type for m in matches] == [MatchType.TEXT, MatchType.JS, MatchType.COMMENT]
        assert matches[0].snippet == "...Find the needle here..."
        assert matches[1].snippet == '...var token = "needle";...'
        assert matches[2].snippet == "...needle in comment..."
        for match in matches:
            assert match.timestamp == TIMESTAMP
            assert match.archive_url == ARCHIVE_URL

    def test_keyword_metacharacters_are_literal(self):
        assert extract("<body><p>axb</p></body>", "a.b") == []

        matches = extract("<body><p>axb and a.b</p></body>", "a.b")
        assert len(matches) == 1
        assert matches[0].snippet == "...axb and a.b..."

    def test_matching_is_case_insensitive(self):
        matches = extract("<body><p>The NEEDLE and the Needle</p></body>", "nEeDlE")
        assert len(matches) == 2
        assert all(m.match_type == MatchType.TEXT for m in matches)

    def test_adjacent_occurrences_each_count(self):
        matches = extract("<body>aaa</body>", "a")
        assert len(matches) == 3
        assert [m.snippet for m in matches] == ["...aaa..."] * 3

    def test_snippet_keeps_thirty_characters_of_context(self):
        html = "<body><p>" + "x" * 50 + "needle" + "y" * 50 + "</p></body>"

        matches = extract(html, "needle")

        assert matches[0].snippet == "..." + "x" * 30 + "needle" + "y" * 30 + "..."

    def test_text_whitespace_is_collapsed(self):
        html = "<body><p>first\n\n   line</p>\n<div>\tthe   needle\t</div></body>"

        matches = extract(html, "needle")

        assert matches[0].snippet == "...first line the needle..."

    def test_toolbar_and_archive_scripts_are_ignored(self):
        html = """
        <body>
          <div id="wm-ipp-base"><p>secret toolbar</p></div>
          <div id="wm-ipp"><span>secret banner</span></div>
          <div id="donato">secret donation</div>
          <script src="https://web-static.archive.org/_static/js/bundle.js">var secret = 1;</script>
          <p>public page</p>
        </body>
        """

        assert extract(html, "secret") == []

    def test_site_scripts_with_src_are_kept(self):
        html = '<body><script src="/js/app.js">var secret = 1;</script></body>'

        matches = extract(html, "secret")

        assert [m.match_type for m in matches] == [MatchType.JS]

    def test_archive_footer_comment_is_skipped(self):
        html = """
        <body>
          <p>nothing to see</p>
          <!--
               FILE ARCHIVED ON 10:15:42 Jan 01, 2005 AND RETRIEVED FROM THE
               INTERNET ARCHIVE ON 12:00:00 Mar 01, 2024. secret
          -->
          <!-- secret note -->
        </body>
        """

        matches = extract(html, "secret")

        assert len(matches) == 1
        assert matches[0].match_type == MatchType.COMMENT
        assert matches[0].snippet == "...secret note..."

    def test_each_script_is_searched_independently(self):
        html = """
        <html><head>
          <script>
            var apiKey = "needle-1";
          </script>
        </head><body>
          <script>console.log("needle-2");</script>
        </body></html>
        """

        matches = extract(html, "needle")

        assert [m.match_type for m in matches] == [MatchType.JS, MatchType.JS]
        assert "\n" not in matches[0].snippet
        assert matches[0].snippet.startswith("...var apiKey")
        assert matches[1].snippet == '...console.log("needle-2");...'

    def test_script_text_is_not_visible_text(self):
        matches = extract("<body><script>var needle;</script><style>.needle{}</style></body>", "needle")
        assert [m.match_type for m in matches] == [MatchType.JS]

    def test_malformed_markup_is_tolerated(self):
        html = "<div><p>unclosed needle <b>bold <i>text</div></span><!-- needle"

        matches = extract(html, "needle")

        assert matches[0].match_type == MatchType.TEXT
        assert "unclosed needle" in matches[0].snippet

    def test_empty_document_has_no_matches(self):
        assert extract("", "needle") == []

    def test_extraction_is_deterministic(self):
        html = "<body><p>needle</p><script>needle()</script><!-- needle --></body>"

        first = [m.model_dump() for m in extract(html, "needle")]
        second = [m.model_dump() for m in extract(html, "needle")]

        assert first == second

    def test_match_serializes_with_camel_case_keys(self):
        match = extract("<body>needle</body>", "needle")[0]

        assert match.model_dump(by_alias=True, mode="json") == {
            "timestamp": TIMESTAMP,
            "archiveUrl": ARCHIVE_URL,
            "matchType": "TEXT",
            "snippet": "...needle...",
        }


class TestFindOccurrences:
    def test_zero_width_pattern_advances(self):
        pattern = re.compile("")
        assert list(ExtractorService.find_occurrences(pattern, "ab")) == [(0, 0), (1, 1), (2, 2)]

    @pytest.mark.parametrize("text,expected", [
        ("", []),
        ("abcabc", [(0, 3), (3, 6)]),
        ("xABCx", [(1, 4)]),
    ])
    def test_positions(self, text, expected):
        pattern = ExtractorService.build_pattern("abc")
        assert list(ExtractorService.find_occurrences(pattern, text)) == expected


class TestHtmlDocument:
    def test_body_text_falls_back_to_document(self):
        document = HtmlDocument("<p>hello</p> <p>world</p>")
        assert document.body_text().split() == ["hello", "world"]

    def test_serialize_keeps_comments(self):
        document = HtmlDocument("<body><!-- keep me --><p>x</p></body>")
        assert "<!-- keep me -->" in document.serialize()

    def test_remove_ids_counts_removed_elements(self):
        document = HtmlDocument('<body><div id="wm-ipp">a</div><div id="other">b</div></body>')
        assert document.remove_ids(["wm-ipp", "missing"]) == 1
        assert document.body_text().strip() == "b"
