from typing import Iterable, List

from bs4 import BeautifulSoup
from bs4.element import PreformattedString

# Text under these tags is never rendered as page copy
NON_VISIBLE_TAGS = ["script", "style", "template"]


class HtmlDocument:
    """
    Thin wrapper over a BeautifulSoup tree.

    Only the operations the extractor needs are exposed, so the parser
    behind it can change without touching the search logic.
    """

    def __init__(self, markup: str, parser: str = "html.parser"):
        self.soup = BeautifulSoup(markup or "", parser)

    def remove_ids(self, element_ids: Iterable[str]) -> int:
        removed = 0
        for element_id in element_ids:
            for element in self.soup.find_all(id=element_id):
                element.decompose()
                removed += 1
        return removed

    def remove_scripts_referencing(self, marker: str) -> int:
        """Drop every <script> whose src contains ``marker``."""
        removed = 0
        for script in self.soup.find_all("script", src=True):
            if marker in script.get("src", ""):
                script.decompose()
                removed += 1
        return removed

    def body_text(self) -> str:
        """Rendered text of <body> (whole document when there is none)."""
        root = self.soup.body or self.soup
        parts: List[str] = []
        for string in root.find_all(string=True):
            # comments, doctypes, CDATA
            if isinstance(string, PreformattedString):
                continue
            if string.find_parent(NON_VISIBLE_TAGS) is not None:
                continue
            parts.append(str(string))
        return " ".join(parts)

    def script_bodies(self) -> List[str]:
        """Raw text of every <script>, in document order."""
        return [script.get_text() for script in self.soup.find_all("script")]

    def serialize(self) -> str:
        return str(self.soup)
