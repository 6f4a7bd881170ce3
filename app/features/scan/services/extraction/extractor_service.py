import re
from typing import Iterator, List, Pattern, Tuple

from app.features.scan.schemas.scan import MatchType, ScanMatch
from app.features.scan.services.extraction.html_document import HtmlDocument
from app.platform.config import settings

COMMENT_PATTERN = re.compile(r"<!--(.*?)-->", re.DOTALL)
WHITESPACE_PATTERN = re.compile(r"\s+")


class ExtractorService:
    # Wayback toolbar / banner containers injected into every replayed page
    TOOLBAR_ELEMENT_IDS = ("wm-ipp-base", "wm-ipp", "donato")
    # Footer comment the archive appends to replayed pages
    ARCHIVE_COMMENT_MARKER = "FILE ARCHIVED ON"
    SNIPPET_CONTEXT = 30
    ELLIPSIS = "..."

    @staticmethod
    def build_pattern(keyword: str) -> Pattern:
        """Case-insensitive pattern matching ``keyword`` literally."""
        return re.compile(re.escape(keyword), re.IGNORECASE)

    @staticmethod
    def find_occurrences(pattern: Pattern, text: str) -> Iterator[Tuple[int, int]]:
        """
        Yield (start, end) of every match, resuming from the previous end.

        A zero-width match bumps the cursor by one so the loop always
        makes progress.
        """
        position = 0
        while position <= len(text):
            found = pattern.search(text, position)
            if found is None:
                return
            yield found.start(), found.end()
            position = found.end() if found.end() > found.start() else found.end() + 1

    @classmethod
    def _window(cls, text: str, start: int, end: int) -> str:
        return text[max(0, start - cls.SNIPPET_CONTEXT):min(len(text), end + cls.SNIPPET_CONTEXT)]

    @classmethod
    def _wrap(cls, snippet: str) -> str:
        return f"{cls.ELLIPSIS}{snippet}{cls.ELLIPSIS}"

    @staticmethod
    def clean_document(html: str) -> HtmlDocument:
        """Parse and strip the archive's own toolbar and scripts."""
        document = HtmlDocument(html)
        document.remove_ids(ExtractorService.TOOLBAR_ELEMENT_IDS)
        document.remove_scripts_referencing(settings.ARCHIVE_HOST_MARKER)
        return document

    @classmethod
    def search_text(cls, document: HtmlDocument, pattern: Pattern) -> List[str]:
        text = WHITESPACE_PATTERN.sub(" ", document.body_text()).strip()
        return [
            cls._wrap(cls._window(text, start, end))
            for start, end in cls.find_occurrences(pattern, text)
        ]

    @classmethod
    def search_scripts(cls, document: HtmlDocument, pattern: Pattern) -> List[str]:
        snippets = []
        for body in document.script_bodies():
            if not body:
                continue
            for start, end in cls.find_occurrences(pattern, body):
                snippets.append(cls._wrap(cls._window(body, start, end).replace("\n", " ").strip()))
        return snippets

    @classmethod
    def search_comments(cls, document: HtmlDocument, pattern: Pattern) -> List[str]:
        snippets = []
        for comment in COMMENT_PATTERN.finditer(document.serialize()):
            body = comment.group(1)
            if cls.ARCHIVE_COMMENT_MARKER in body:
                continue
            for start, end in cls.find_occurrences(pattern, body):
                snippets.append(cls._wrap(cls._window(body, start, end).strip()))
        return snippets

    @staticmethod
    def extract(html: str, keyword: str, timestamp: str, archive_url: str) -> List[ScanMatch]:
        """
        Find every occurrence of ``keyword`` in one archived page.

        Matches come back grouped by zone (visible text, then script
        bodies, then HTML comments) and by position within each zone.

        Args:
            html: Raw markup of the replayed page
            keyword: Term to look for, matched literally and case-insensitively
            timestamp: CDX timestamp of the snapshot
            archive_url: Replay URL the page was fetched from

        Returns:
            List[ScanMatch]: Empty when the keyword does not occur
        """
        document = ExtractorService.clean_document(html)
        pattern = ExtractorService.build_pattern(keyword)

        zones = (
            (MatchType.TEXT, ExtractorService.search_text),
            (MatchType.JS, ExtractorService.search_scripts),
            (MatchType.COMMENT, ExtractorService.search_comments),
        )

        matches: List[ScanMatch] = []
        for match_type, search in zones:
            for snippet in search(document, pattern):
                matches.append(ScanMatch(
                    timestamp=timestamp,
                    archive_url=archive_url,
                    match_type=match_type,
                    snippet=snippet,
                ))
        return matches
