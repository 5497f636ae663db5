"""
HTML to plain text conversion for work item descriptions.

Azure DevOps stores rich-text fields such as System.Description as HTML.
The markup is parsed into a small tree of Document, Element and Text nodes
and then rendered as readable plain text: paragraphs and divs start on a new
line, <br> breaks the line and each list item is a line prefixed with "- ".
The rendering is lossy; it is meant for display only.
"""

import html
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import List, Optional, Union

# Elements that never have content or an end tag
VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

# An open element of the same kind is closed implicitly by these start tags
SELF_CLOSING_SIBLINGS = frozenset({"p", "li"})


@dataclass
class Text:
    content: str


@dataclass
class Element:
    tag: str
    children: List["Node"] = field(default_factory=list)


@dataclass
class Document:
    children: List["Node"] = field(default_factory=list)


Node = Union[Document, Element, Text]


class _TreeBuilder(HTMLParser):
    """Builds a Document tree; text keeps its raw entity references."""

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self.document = Document()
        self._stack: List[Union[Document, Element]] = [self.document]
        self._pending_text: List[str] = []

    @property
    def _current(self) -> Union[Document, Element]:
        return self._stack[-1]

    def _flush_text(self):
        if self._pending_text:
            self._current.children.append(Text("".join(self._pending_text)))
            self._pending_text = []

    def handle_starttag(self, tag, attrs):
        self._flush_text()
        tag = tag.lower()
        current = self._current
        if tag in SELF_CLOSING_SIBLINGS and isinstance(current, Element) and current.tag == tag:
            self._stack.pop()
        element = Element(tag)
        self._current.children.append(element)
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag, attrs):
        self._flush_text()
        self._current.children.append(Element(tag.lower()))

    def handle_endtag(self, tag):
        self._flush_text()
        tag = tag.lower()
        for index in range(len(self._stack) - 1, 0, -1):
            node = self._stack[index]
            if isinstance(node, Element) and node.tag == tag:
                del self._stack[index:]
                return
        # stray end tag, nothing to close

    def handle_data(self, data):
        self._pending_text.append(data)

    def handle_entityref(self, name):
        self._pending_text.append(f"&{name};")

    def handle_charref(self, name):
        self._pending_text.append(f"&#{name};")

    def close(self):
        super().close()
        self._flush_text()


def parse_html(markup: str) -> Document:
    """Parse an HTML fragment into a Document tree."""
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.document


def _render(node: Node, out: List[str]):
    if isinstance(node, Document):
        for child in node.children:
            _render(child, out)
    elif isinstance(node, Element):
        tag = node.tag
        if tag == "br":
            out.append("\n")
        elif tag in ("p", "div"):
            if out:
                out.append("\n")
            for child in node.children:
                _render(child, out)
        elif tag == "li":
            # one line per list item
            if out and not out[-1].endswith("\n"):
                out.append("\n")
            out.append("- ")
            for child in node.children:
                _render(child, out)
        else:
            # ul, ol and everything else just contribute their children
            for child in node.children:
                _render(child, out)
    elif isinstance(node, Text):
        if node.content.strip():
            out.append(html.unescape(node.content))
    else:
        raise TypeError(f"Unexpected node type: {type(node).__name__}")


def to_plain_text(node: Node) -> str:
    out: List[str] = []
    _render(node, out)
    return "".join(out)


def html_to_plain_text(markup: Optional[str]) -> str:
    """
    Convert an HTML string to plain text.

    Args:
        markup: HTML fragment, may be None or empty

    Returns:
        The plain text rendering, "" for empty input
    """
    if not markup:
        return ""
    return to_plain_text(parse_html(markup))
