"""Turn Graph message bodies into plain text for terminal output.

Usage:
    from graph_cli.utils.body_text import body_to_text

    print(body_to_text(raw_body, content_type="html"))
"""

import html
import re
from typing import Callable

from bs4 import BeautifulSoup

# (text, content_type) -> text
Step = Callable[[str, str], str]


def _link_text(anchor) -> str:
    label = anchor.get_text(" ", strip=True)
    href = (anchor.get("href") or "").strip()
    target = href[len("mailto:"):] if href.lower().startswith("mailto:") else href
    if not target or target.startswith("#") or target == label:
        return label
    return f"{label} <{target}>" if label else f"<{target}>"


def html_to_text(text: str, content_type: str) -> str:
    """Convert HTML to plain text for a terminal.

    Paragraph and line breaks survive, list items get a "- " bullet and links
    keep their target as `label <url>`.
    """
    if content_type.lower() != "html" or not text.strip():
        return text

    soup = BeautifulSoup(text, "lxml")

    for el in soup(["script", "style", "head", "meta", "link", "img"]):
        el.decompose()

    for anchor in soup.find_all("a"):
        anchor.replace_with(_link_text(anchor))
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for li in soup.find_all("li"):
        li.insert(0, "- ")
    for tag in soup.find_all(["p", "div", "tr", "li", "table", "ul", "ol"]):
        tag.insert_before("\n")
        tag.insert_after("\n")
    for tag in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
        tag.insert_before("\n\n")
        tag.insert_after("\n")

    return html.unescape(soup.get_text(separator=" "))


def normalize_line_endings(text: str, content_type: str) -> str:
    """Drop zero-width characters and normalize NBSP and CR/LF."""
    text = re.sub(r"[\u200b\u200c\u200d\ufeff]", "", text)
    return text.replace("\u00a0", " ").replace("\r\n", "\n").replace("\r", "\n")


def normalize_whitespace(text: str, content_type: str) -> str:
    """Collapse runs of spaces and keep at most two consecutive blank lines."""
    text = re.sub(r"[^\S\n]+", " ", text)
    result = []
    blanks = 0
    for line in (line.strip() for line in text.split("\n")):
        if not line:
            blanks += 1
            if blanks <= 2:
                result.append(line)
        else:
            blanks = 0
            result.append(line)
    return "\n".join(result).strip()


DEFAULT_STEPS: list[Step] = [
    normalize_line_endings,
    html_to_text,
    normalize_whitespace,
]


def body_to_text(text: str, content_type: str = "text", steps: list[Step] | None = None) -> str:
    if not text:
        return ""
    for step in (steps or DEFAULT_STEPS):
        text = step(text, content_type)
    return text
