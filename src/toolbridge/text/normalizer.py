"""Rich-markup to plain-text normalization.

Confluence storage format and Jira rendered HTML are parsed once with
BeautifulSoup and run through ordered passes:

1. extract_macros: Jira/date/link/user storage elements become bracketed markers
2. remove_noise: scripts, media, navigation chrome and comments are dropped
3. render: headings, lists, tables, quotes and code become plain text
4. normalize_whitespace: collapse runs, cap blank lines, trim
5. summarize: sentence-bounded truncation past a length cap

Any failure in passes 1-3 falls back to a regex tag strip, so normalize()
always returns text.
"""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag
from pydantic import BaseModel, ConfigDict, Field

from toolbridge.runtime.observability import get_logger

log = get_logger("normalizer")

DEFAULT_MARKER = " [...]"

_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_HSPACE = re.compile("[ \t\f\v\u00a0]+")
_ANY_SPACE = re.compile(r"\s+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

# Protected whitespace (pre blocks, list indentation) survives normalize_whitespace
_SP, _TAB = "\x00", "\x01"


class NormalizedDocument(BaseModel):
    """Plain-text rendering of a document.

    Attributes:
        plain_text: Rendered text, never longer than the normalizer's max_chars
        truncated: Whether summarization shortened the text (it then ends with the marker)
        original_length: Length of the raw markup
    """

    model_config = ConfigDict(frozen=True)

    plain_text: str = ""
    truncated: bool = False
    original_length: int = Field(default=0, ge=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Pass 1: Macro Extraction
# ═══════════════════════════════════════════════════════════════════════════════

_CODE_MACROS = frozenset({"code", "noformat"})
_STORAGE_DROP = frozenset({"ac:parameter", "ac:image", "ac:emoticon", "ac:placeholder"})
_USER_ATTRS = ("ri:userkey", "ri:username", "ri:account-id")


def parse(markup: str) -> BeautifulSoup:
    """Parse markup. CDATA sections are turned into escaped text first."""
    return BeautifulSoup(_CDATA.sub(lambda m: html.escape(m.group(1), quote=False), markup), "html.parser")


def extract_macros(soup: BeautifulSoup) -> None:
    """Replace structured storage elements with markers, then dissolve the remaining ac:/ri: tags."""
    for macro in soup.find_all("ac:structured-macro"):
        name = (macro.get("ac:name") or "").lower()
        if name == "jira":
            key, server = _macro_param(macro, "key"), _macro_param(macro, "serverid")
            if key:
                macro.replace_with(f"[JIRA: {key} ({server})]" if server else f"[JIRA: {key}]")
            else:
                macro.replace_with("[JIRA Issue]")
        elif name in _CODE_MACROS and (body := macro.find("ac:plain-text-body")) is not None:
            body.name = "pre"

    for tag in soup.find_all("time"):
        if dt := (tag.get("datetime") or "").strip():
            display = _text_of(tag).strip() or dt
            tag.replace_with(f"[Date: {dt}]" if display == dt else f"[Date: {dt} ({display})]")

    for link in soup.find_all("ac:link"):
        link.replace_with(_link_marker(link))

    for user in soup.find_all("ri:user"):
        user.replace_with(f"[User: {_user_key(user)}]" if _user_key(user) else "[User]")

    for tag in soup.find_all(lambda t: t.name in _STORAGE_DROP or t.name.startswith("ri:")):
        tag.extract()
    for tag in soup.find_all(lambda t: t.name.startswith("ac:")):
        tag.unwrap()


def _macro_param(macro: Tag, name: str) -> str:
    for param in macro.find_all("ac:parameter"):
        if (param.get("ac:name") or "").lower() == name:
            return _text_of(param).strip()
    return ""


def _link_marker(link: Tag) -> str:
    page = link.find("ri:page")
    if page is not None and (title := (page.get("ri:content-title") or "").strip()):
        return f"[Link: {title}]"
    if (user := link.find("ri:user")) is not None:
        body = link.find(["ac:plain-text-link-body", "ac:link-body"])
        name = _text_of(body).strip() if body is not None else ""
        return f"[User: {name or _user_key(user) or 'unknown'}]"
    for resource in link.find_all(lambda t: t.name.startswith("ri:")):
        resource.extract()
    text = _text_of(link).strip()
    return f"[Link: {text}]" if text else "[Link]"


def _user_key(user: Tag) -> str:
    for attr in _USER_ATTRS:
        if value := (user.get(attr) or "").strip():
            return value
    return ""


def _text_of(node: Tag | None) -> str:
    """Concatenated text of real string nodes (comments and declarations excluded)."""
    if node is None:
        return ""
    return "".join(s for s in node.descendants if _is_text(s))


def _is_text(node: object) -> bool:
    return isinstance(node, NavigableString) and not isinstance(
        node, (Comment, Declaration, Doctype, ProcessingInstruction),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Pass 2: Noise Removal
# ═══════════════════════════════════════════════════════════════════════════════

_NOISE_TAGS = ("script", "style", "noscript", "meta", "link", "head", "title", "iframe", "embed",
               "object", "canvas", "svg", "audio", "video", "nav", "template")
_NOISE_CLASSES = frozenset({
    "breadcrumbs", "navigation", "toolbar", "footer", "header", "sidebar", "comments-section",
    "page-tree", "space-tools", "page-metadata", "confluence-metadata",
})
_NOISE_DIV_IDS = ("header", "footer", "navigation")
_NOISE_DIV_CLASSES = ("confluence-navigation", "page-tree", "space-navigation", "metadata", "toolbar")


def remove_noise(soup: BeautifulSoup) -> None:
    """Drop non-content elements along with their text."""
    for comment in soup.find_all(string=lambda s: isinstance(s, (Comment, Declaration, Doctype, ProcessingInstruction))):
        comment.extract()
    for tag in soup.find_all(_is_noise):
        tag.extract()


def _is_noise(tag: Tag) -> bool:
    if tag.name in _NOISE_TAGS:
        return True
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if any(c in _NOISE_CLASSES for c in classes):
        return True
    if tag.name != "div":
        return False
    div_id = (tag.get("id") or "").lower()
    joined = " ".join(classes).lower()
    return any(p in div_id for p in _NOISE_DIV_IDS) or any(p in joined for p in _NOISE_DIV_CLASSES)


# ═══════════════════════════════════════════════════════════════════════════════
# Pass 3: Structural Rendering
# ═══════════════════════════════════════════════════════════════════════════════

_HEADINGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
_BLOCKS = frozenset({
    "p", "div", "section", "article", "main", "aside", "header", "footer", "figure", "figcaption",
    "address", "details", "summary", "dl", "dt", "dd", "form", "fieldset", "body", "html", "center",
})


def render(soup: BeautifulSoup | Tag) -> str:
    """Render the tree to text. Whitespace is not yet normalized."""
    return _render_children(soup)


def _render(node: object) -> str:
    if isinstance(node, NavigableString):
        return _ANY_SPACE.sub(" ", _scrub(str(node))) if _is_text(node) else ""
    if not isinstance(node, Tag):
        return ""
    name = node.name
    if name == "br":
        return "\n"
    if name == "hr":
        return "\n\n"
    if name == "pre":
        return _block(_protect(_scrub(_text_of(node)).strip("\n")))
    if name in ("ul", "ol"):
        return _block(_render_list(node, 0))
    if name == "table":
        return _block(_render_table(node))
    if name == "blockquote":
        inner = _tidy(_render_children(node))
        return _block("\n".join(f">{_SP}{line}" if line else ">" for line in inner.split("\n")))
    if name in _HEADINGS or name in _BLOCKS or name == "li":
        return _block(_render_children(node))
    return _render_children(node)


def _render_children(node: Tag) -> str:
    return "".join(_render(child) for child in node.children)


def _render_list(node: Tag, depth: int) -> str:
    ordered = node.name == "ol"
    try:
        number = int(node.get("start", 1))
    except (TypeError, ValueError):
        number = 1
    indent = _SP * 2 * depth
    lines: list[str] = []
    for item in node.find_all("li", recursive=False):
        text_parts, nested = [], []
        for child in item.children:
            if isinstance(child, Tag) and child.name in ("ul", "ol"):
                nested.append(_render_list(child, depth + 1))
            else:
                text_parts.append(_render(child))
        prefix = f"{number}.{_SP}" if ordered else f"-{_SP}"
        lines.append(f"{indent}{prefix}{_squash(''.join(text_parts))}")
        lines.extend(n for n in nested if n)
        number += 1
    return "\n".join(lines)


def _render_table(node: Tag) -> str:
    """One line per row, cells joined by " | ".

    html.parser does not close omitted </td> and </tr> tags, so a cell or row
    may arrive nested inside the previous one; each still starts its own cell
    or row. Nested tables render inside their cell.
    """
    rows: list[list[list[str]]] = []

    def walk(parent: Tag) -> None:
        for child in parent.children:
            if isinstance(child, Tag) and child.name == "tr":
                rows.append([])
                walk(child)
            elif isinstance(child, Tag) and child.name in ("th", "td"):
                if not rows:
                    rows.append([])
                rows[-1].append([])
                walk(child)
            elif isinstance(child, Tag) and child.name in ("thead", "tbody", "tfoot"):
                walk(child)
            elif rows and rows[-1]:
                rows[-1][-1].append(_render(child))

    walk(node)
    lines = []
    for row in rows:
        cells = [_squash("".join(parts)) for parts in row]
        if any(cells):
            lines.append(" | ".join(cells))
    return "\n".join(lines)


def _block(text: str) -> str:
    return f"\n\n{text.strip()}\n\n" if text.strip() else ""


def _squash(text: str) -> str:
    """Single-line form: all whitespace runs (newlines included) become one space."""
    return _ANY_SPACE.sub(" ", text).strip()


def _scrub(text: str) -> str:
    return text.replace(_SP, "").replace(_TAB, "")


def _protect(text: str) -> str:
    return text.replace(" ", _SP).replace("\t", _TAB)


def _tidy(text: str) -> str:
    """normalize_whitespace without releasing protected whitespace."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines: list[str] = []
    for line in text.split("\n"):
        line = _HSPACE.sub(" ", line).strip()
        if line or (lines and lines[-1]):
            lines.append(line)
    return "\n".join(lines).strip()


# ═══════════════════════════════════════════════════════════════════════════════
# Pass 4 + 5: Whitespace and Summarization
# ═══════════════════════════════════════════════════════════════════════════════


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal runs to one space, allow at most one blank line, trim ends."""
    return _tidy(text).replace(_SP, " ").replace(_TAB, "\t")


def summarize(text: str, max_chars: int, summary_chars: int, marker: str = DEFAULT_MARKER) -> tuple[str, bool]:
    """Shorten text over max_chars to whole sentences fitting summary_chars, plus marker.

    Text within the cap is returned unchanged. When not even the first
    sentence fits, the cut falls on the last word boundary inside the budget.
    """
    if len(text) <= max_chars:
        return text, False
    end = 0
    for match in _SENTENCE_BREAK.finditer(text):
        if match.start() > summary_chars:
            break
        end = match.start()
    head = text[:end] if end else _cut_at_word(text, summary_chars)
    return head.rstrip() + marker, True


def _cut_at_word(text: str, limit: int) -> str:
    cut = text[:limit]
    if limit < len(text) and not text[limit].isspace() and (space := cut.rfind(" ")) > 0:
        return cut[:space]
    return cut


def strip_tags(markup: str) -> str:
    """Blunt fallback: drop every tag, unescape entities."""
    return html.unescape(_TAG.sub(" ", _CDATA.sub(lambda m: m.group(1), markup)))


# ═══════════════════════════════════════════════════════════════════════════════
# Normalizer
# ═══════════════════════════════════════════════════════════════════════════════


class DocumentNormalizer:
    """Turns backend markup into bounded plain text.

    Args:
        max_chars: Length cap; longer text is summarized
        summary_chars: Budget for whole sentences kept when summarizing
            (defaults to max_chars minus the marker length)
        marker: Appended to summarized text

    Example:
        >>> DocumentNormalizer(max_chars=500).normalize("<p>Hello <b>world</b></p>").plain_text
        'Hello world'
    """

    __slots__ = ("max_chars", "summary_chars", "marker")

    def __init__(self, max_chars: int = 8000, summary_chars: int | None = None, marker: str = DEFAULT_MARKER) -> None:
        summary_chars = max_chars - len(marker) if summary_chars is None else summary_chars
        if summary_chars <= 0 or summary_chars + len(marker) > max_chars:
            raise ValueError("summary_chars must be positive and leave room for the marker within max_chars")
        self.max_chars = max_chars
        self.summary_chars = summary_chars
        self.marker = marker

    def to_text(self, markup: str | None) -> str:
        """Passes 1-4. Never raises for bad markup."""
        if not markup:
            return ""
        try:
            soup = parse(markup)
            extract_macros(soup)
            remove_noise(soup)
            rendered = render(soup)
        except Exception as e:  # noqa: BLE001
            log.warning("markup rendering failed, stripping tags", error=f"{type(e).__name__}: {e}",
                        length=len(markup))
            rendered = strip_tags(markup)
        return normalize_whitespace(rendered)

    def normalize(self, markup: str | None) -> NormalizedDocument:
        text = self.to_text(markup)
        plain, truncated = summarize(text, self.max_chars, self.summary_chars, self.marker)
        return NormalizedDocument(plain_text=plain, truncated=truncated, original_length=len(markup or ""))
