"""Rewrite Jira wiki markup into GitLab Markdown.

Text is first parsed into typed spans and then rendered, so the contents of
``{code}`` blocks never go through the inline rules and the output of one
rule is never matched again by another. Attachment references are kept as
verbatim spans; ``rewrite_text()`` replaces them while rendering and
``substitute_attachments()`` does the same on plain text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import AttachmentRef

logger: logging.Logger = logging.getLogger(__name__)

UNAVAILABLE_SUFFIX: Final[str] = "|unavailable"


class SpanKind(Enum):
    TEXT = "text"
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE = "strike"
    INSERTED = "inserted"
    MENTION = "mention"
    CODE_BLOCK = "code_block"
    VERBATIM = "verbatim"


@dataclass(frozen=True)
class Span:
    """A piece of parsed Jira markup."""

    kind: SpanKind
    text: str
    lang: str = ""
    # Parsed contents of styled spans
    children: tuple[Span, ...] = ()


_CODE_BLOCK_RE: Final[re.Pattern[str]] = re.compile(r"\{code(?::([^}]*))?\}(.*?)\{code\}", re.DOTALL)


def _inline(marker: str) -> str:
    """Pattern for ``<marker>text<marker>`` with no whitespace just inside and no word char just outside."""
    m = re.escape(marker)
    return rf"(?<![\w{m}]){m}(?=[^\s{m}])([^{m}\n]*?[^\s{m}]){m}(?![\w{m}])"


# Alternation order is match priority at a given position
_INLINE_RE: Final[re.Pattern[str]] = re.compile(
    "|".join(
        [
            r"(?P<color>\{color(?::[^}]*)?\}(?P<color_text>.*?)\{color\})",
            r"(?P<attachment>!(?=\S)[^!\n]*?[^\s!]!|\[\^[^\]\n]+\])",
            r"(?P<mention>\[~(?P<mention_name>[^\]\n]+)\])",
            rf"(?P<bold>{_inline('*')})",
            rf"(?P<underline>{_inline('_')})",
            rf"(?P<italic>{_inline('/')})",
            rf"(?P<strike>{_inline('-')})",
            rf"(?P<inserted>{_inline('+')})",
        ]
    ),
    re.DOTALL,
)

_STYLE_GROUPS: Final[dict[str, SpanKind]] = {
    "bold": SpanKind.BOLD,
    "underline": SpanKind.UNDERLINE,
    "italic": SpanKind.ITALIC,
    "strike": SpanKind.STRIKE,
    "inserted": SpanKind.INSERTED,
}

_ATTACHMENT_RE: Final[re.Pattern[str]] = re.compile(
    r"!(?P<embed>(?=\S)[^!\n|]*?[^\s!|])(?:\|[^!\n]*)?!|\[\^(?P<link>[^\]\n]+)\]"
)


def parse_markup(text: str) -> list[Span]:
    """Split Jira markup into typed spans."""
    spans: list[Span] = []
    position = 0
    for match in _CODE_BLOCK_RE.finditer(text):
        spans.extend(_parse_inline(text[position : match.start()]))
        spans.append(Span(SpanKind.CODE_BLOCK, match.group(2), lang=_code_language(match.group(1))))
        position = match.end()
    spans.extend(_parse_inline(text[position:]))
    return spans


def _code_language(options: str | None) -> str:
    """Return the language of ``{code:java|title=Foo.java}``; parameters like ``title=`` are dropped."""
    language = (options or "").split("|", 1)[0].strip()
    return "" if "=" in language else language


def _parse_inline(text: str) -> list[Span]:
    spans: list[Span] = []
    position = 0
    for match in _INLINE_RE.finditer(text):
        if match.start() > position:
            spans.append(Span(SpanKind.TEXT, text[position : match.start()]))
        position = match.end()

        if match.group("color") is not None:
            spans.extend(_parse_inline(match.group("color_text")))
        elif match.group("attachment") is not None:
            spans.append(Span(SpanKind.VERBATIM, match.group("attachment")))
        elif match.group("mention") is not None:
            spans.append(Span(SpanKind.MENTION, match.group("mention_name")))
        else:
            for group_name, kind in _STYLE_GROUPS.items():
                if match.group(group_name) is not None:
                    # The inner text is the first capture inside the named alternative
                    inner = match.group(_INLINE_RE.groupindex[group_name] + 1)
                    spans.append(Span(kind, inner, children=tuple(_parse_inline(inner))))
                    break
    if position < len(text):
        spans.append(Span(SpanKind.TEXT, text[position:]))
    return spans


_TEMPLATES: Final[dict[SpanKind, str]] = {
    SpanKind.BOLD: "**{text}**",
    SpanKind.UNDERLINE: "*{text}*",
    SpanKind.ITALIC: "_{text}_",
    SpanKind.STRIKE: "~~{text}~~",
    SpanKind.MENTION: "@{text}",
    SpanKind.CODE_BLOCK: "```{lang}\n{text}\n```",
}


def render_markdown(spans: Iterable[Span], refs: Iterable[AttachmentRef] | None = None) -> str:
    """Render parsed spans in GitLab Markdown.

    With ``refs`` given, attachment references are substituted as well.
    Code block contents are never touched.
    """
    return _render(spans, list(refs) if refs is not None else None)


def _render(spans: Iterable[Span], ref_list: list[AttachmentRef] | None) -> str:
    parts: list[str] = []
    for span in spans:
        if span.kind is SpanKind.VERBATIM and ref_list is not None:
            parts.append(substitute_attachments(span.text, ref_list))
        elif span.kind is SpanKind.CODE_BLOCK:
            parts.append(_TEMPLATES[span.kind].format(lang=span.lang, text=span.text.strip("\n")))
        elif span.kind in (SpanKind.TEXT, SpanKind.VERBATIM):
            parts.append(span.text)
        else:
            inner = _render(span.children, ref_list) if span.children else span.text
            parts.append(_TEMPLATES.get(span.kind, "{text}").format(text=inner))
    return "".join(parts)


def translate_markup(text: str) -> str:
    """Translate Jira wiki markup to GitLab Markdown, leaving attachment references as they are."""
    if not text:
        return text
    return render_markdown(parse_markup(text))


def substitute_attachments(text: str, refs: Iterable[AttachmentRef]) -> str:
    """Replace ``!name!``, ``!name|thumbnail!`` and ``[^name]`` with the relocated attachment links.

    References with no relocated attachment become ``name|unavailable``.
    """
    if not text:
        return text
    links: dict[str, str] = {}
    for ref in refs:
        links.setdefault(ref.source_name, ref.target_markdown_link)

    def _replace(match: re.Match[str]) -> str:
        filename = match.group("embed") or match.group("link")
        link = links.get(filename)
        if link is None:
            logger.debug(f"No relocated attachment for reference '{filename}'")
            return f"{filename}{UNAVAILABLE_SUFFIX}"
        return link

    return _ATTACHMENT_RE.sub(_replace, text)


def rewrite_text(text: str, refs: Iterable[AttachmentRef] = ()) -> str:
    """Translate markup and point attachment references at their GitLab uploads in one pass."""
    if not text:
        return text
    return render_markdown(parse_markup(text), refs)
