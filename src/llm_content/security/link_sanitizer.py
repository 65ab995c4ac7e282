"""URI scheme allowlisting for links in generated Markdown."""

from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

SAFE_TARGET = re.compile(r"^(?:https?://|mailto:|tel:|/|#)", re.IGNORECASE)

# Attributes holding a link target, per tag
LINK_ATTRIBUTES = {"a": "href", "img": "src"}

# Autolink: <scheme:anything-without-spaces>, with the backslashes before it
AUTOLINK = re.compile(r"(?P<escapes>\\*)<(?P<url>[A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")

# Link reference definition: [label]: target, optionally followed by a title.
# The target may sit on the line after the label.
REFERENCE_DEFINITION = re.compile(
    r"^(?P<label> {0,3}\[(?:\\.|[^\[\]\\])+\]:[ \t]*\n?[ \t]*)"
    r"(?P<url><[^>\n]*>|\S+)"
    r"(?=[ \t]*(?:$|[\"'(]))",
    re.MULTILINE,
)

# Quoted or parenthesized link title
LINK_TITLE = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|\((?:\\.|[^()\\])*\)')

WHITESPACE = " \t\n"


def _closing_bracket(text: str, start: int) -> int:
    """Index of the "]" closing the "[" at start, or -1 if it is unbalanced."""
    depth = 0
    i = start
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _skip_whitespace(text: str, i: int) -> int:
    while i < len(text) and text[i] in WHITESPACE:
        i += 1
    return i


def _parse_destination(text: str, start: int) -> Optional[tuple[str, int]]:
    """
    Parse ``(url "title")`` beginning at the "(" at start.

    Returns:
        The url and the index just past the closing ")", or None when the
        text there is not a link destination
    """
    i = _skip_whitespace(text, start + 1)

    if text.startswith("<", i):
        close = text.find(">", i)
        newline = text.find("\n", i)
        if close == -1 or -1 < newline < close:
            return None
        url = text[i : close + 1]
        i = close + 1
    else:
        url_start = i
        depth = 0
        while i < len(text):
            char = text[i]
            if char == "\\":
                i += 2
                continue
            if char in WHITESPACE:
                break
            if char == "(":
                depth += 1
            elif char == ")":
                if depth == 0:
                    break
                depth -= 1
            i += 1
        if depth:
            return None
        url = text[url_start:i]

    i = _skip_whitespace(text, i)
    if i < len(text) and text[i] in "\"'(":
        title = LINK_TITLE.match(text, i)
        if title is None:
            return None
        i = _skip_whitespace(text, title.end())

    if text.startswith(")", i):
        return url, i + 1
    return None


class LinkSanitizer:
    """
    Rewrites links whose target is not on the scheme allowlist.

    Allowed targets are relative paths (leading "/"), in-page anchors
    (leading "#"), http://, https://, mailto: and tel:. Anything else,
    including javascript:, vbscript: and data:, is replaced with "#"
    while the link text is kept.

    Two entry points cover both sides of the HTML to Markdown transform:
    ``sanitize_tree`` rewrites ``a[href]`` and ``img[src]`` in a parsed
    document, and ``sanitize`` rewrites inline links, images, autolinks
    and reference definitions in Markdown text.

    Example:
        sanitizer = LinkSanitizer()
        sanitizer.sanitize("[x](javascript:alert(1))")  # "[x](#)"
    """

    REPLACEMENT_TARGET = "#"

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)

    @staticmethod
    def is_allowed(url: str) -> bool:
        """Check a link target against the allowlist."""
        target = url.strip()
        if target.startswith("<") and target.endswith(">"):
            target = target[1:-1].strip()
        return bool(SAFE_TARGET.match(target))

    def sanitize_tree(self, soup: BeautifulSoup) -> int:
        """
        Replace disallowed link and image targets in a parsed document.

        Returns:
            Number of attributes rewritten
        """
        rewritten = 0
        for tag, attribute in LINK_ATTRIBUTES.items():
            for element in soup.find_all(tag, attrs={attribute: True}):
                value = element.get(attribute)
                if isinstance(value, list):
                    value = " ".join(value)
                if not self.is_allowed(value or ""):
                    element[attribute] = self.REPLACEMENT_TARGET
                    rewritten += 1
        if rewritten:
            self._logger.debug(f"Neutralized {rewritten} HTML link target(s) with disallowed schemes")
        return rewritten

    def _sanitize_inline(self, text: str) -> tuple[str, int]:
        output = []
        rewritten = 0
        i = 0
        while i < len(text):
            char = text[i]
            if char == "\\":
                output.append(text[i : i + 2])
                i += 2
                continue

            if char == "[":
                close = _closing_bracket(text, i)
                if close != -1 and text.startswith("(", close + 1):
                    destination = _parse_destination(text, close + 1)
                    if destination is not None:
                        url, end = destination
                        # Link text may hold images and links of its own
                        label, count = self._sanitize_inline(text[i + 1 : close])
                        rewritten += count
                        if self.is_allowed(url):
                            output.append("[" + label + text[close:end])
                        else:
                            rewritten += 1
                            output.append(f"[{label}]({self.REPLACEMENT_TARGET})")
                        i = end
                        continue

            output.append(char)
            i += 1
        return "".join(output), rewritten

    def sanitize(self, markdown: str) -> str:
        """Replace every disallowed link target in the Markdown text."""
        result, rewritten = self._sanitize_inline(markdown)

        def replace_definition(match: re.Match[str]) -> str:
            nonlocal rewritten
            if self.is_allowed(match.group("url")):
                return match.group(0)
            rewritten += 1
            return match.group("label") + self.REPLACEMENT_TARGET

        def replace_autolink(match: re.Match[str]) -> str:
            nonlocal rewritten
            # An odd run of backslashes already makes the "<" literal text
            if len(match.group("escapes")) % 2 or self.is_allowed(match.group("url")):
                return match.group(0)
            rewritten += 1
            return "\\" + match.group(0)

        result = REFERENCE_DEFINITION.sub(replace_definition, result)
        result = AUTOLINK.sub(replace_autolink, result)
        if rewritten:
            self._logger.debug(f"Neutralized {rewritten} link(s) with disallowed schemes")
        return result
