"""Rich-text to plain-text conversion for problem and context fields."""

import re
from html.parser import HTMLParser
from typing import List

# 这些标签前后需要换行，避免相邻段落粘连 / Block tags that separate lines
_BLOCK_TAGS = {
    "br", "p", "div", "li", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6",
    "tr", "blockquote", "pre",
}
_SKIPPED_TAGS = {"script", "style"}


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in _BLOCK_TAGS:
            self._parts.append("\n")

    def handle_endtag(self, tag):
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _BLOCK_TAGS:
            self._parts.append("\n")

    def handle_data(self, data):
        if not self._skip_depth:
            self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


def strip_markup(text: str) -> str:
    """Strip HTML tags and entities, keeping line structure.

    Runs of spaces collapse to one, blank lines are dropped and the result is
    trimmed, so whitespace-only input becomes "".
    """
    if not text:
        return ""
    parser = _TextExtractor()
    parser.feed(text)
    parser.close()
    lines = (
        re.sub(r"\s+", " ", line).strip()
        for line in parser.text().split("\n")
    )
    return "\n".join(line for line in lines if line)
