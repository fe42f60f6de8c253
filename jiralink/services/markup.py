"""Markdown to Jira wiki markup conversion.

Covers what pull request descriptions typically contain: headings, emphasis,
code, links, images, lists, block quotes, rules and simple tables. Anything
else passes through as text.
"""

import re
from typing import Callable, List, Optional

_FENCE_RE = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})\s*(?P<lang>[\w+#.-]*)")
_HEADING_RE = re.compile(r"^\s{0,3}(?P<level>#{1,6})\s+(?P<text>.*?)(?:\s+#+)?\s*$")
_RULE_RE = re.compile(r"^\s{0,3}([-*_])(?:\s*\1){2,}\s*$")
_QUOTE_RE = re.compile(r"^\s{0,3}>\s?(?P<text>.*)$")
_LIST_RE = re.compile(r"^(?P<indent>\s*)(?P<marker>[-*+]|\d+[.)])\s+(?P<text>.*)$")
_TABLE_ROW_RE = re.compile(r"^\s*\|.*\|\s*$")
_TABLE_SEP_RE = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(?:\|\s*:?-{3,}:?\s*)*\|?\s*$")

_CODE_SPAN_RE = re.compile(r"(?<!`)(`+)(?!`)(.+?)(?<!`)\1(?!`)")
_IMAGE_RE = re.compile(
    r"!\[[^\]]*\]\(\s*"
    r"(?:<(?P<angled>[^<>\n]*)>|(?P<bare>[^\s()<>]+(?:\([^\s()]*\)[^\s()<>]*)*))"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'))?\s*\)"
)
_LINK_RE = re.compile(r"\[([^\]]+)\]\(\s*<?([^\s()<>]+)>?(?:\s+(?:\"[^\"]*\"|'[^']*'))?\s*\)")
_BOLD_RE = re.compile(r"(?<!\w)(\*\*|__)(?=\S)(.+?)(?<=\S)\1(?!\w)")
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?=\S)(.+?)(?<=\S)\*(?![\w*])")
_STRIKE_RE = re.compile(r"~~(?=\S)(.+?)(?<=\S)~~")
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")

_BOLD = "\x01"


def _render_image(m: re.Match) -> str:
    angled = m.group("angled")
    dest = angled.strip() if angled is not None else m.group("bare")
    return f"!{dest}!"


def convert_inline(text: str) -> str:
    """Convert inline markdown (code, images, links, emphasis) to wiki markup."""
    protected: List[str] = []

    def _protect(render: Callable[[re.Match], str]) -> Callable[[re.Match], str]:
        def _sub(m: re.Match) -> str:
            protected.append(render(m))
            return f"\x00{len(protected) - 1}\x00"

        return _sub

    out = _CODE_SPAN_RE.sub(_protect(lambda m: "{{" + m.group(2).strip() + "}}"), text)
    out = _IMAGE_RE.sub(_protect(_render_image), out)
    out = _LINK_RE.sub(_protect(lambda m: f"[{m.group(1)}|{m.group(2)}]"), out)

    out = _BOLD_RE.sub(lambda m: f"{_BOLD}{m.group(2)}{_BOLD}", out)
    out = _ITALIC_RE.sub(r"_\1_", out)
    out = _STRIKE_RE.sub(r"-\1-", out)
    out = out.replace(_BOLD, "*")

    return _PLACEHOLDER_RE.sub(lambda m: protected[int(m.group(1))], out)


def _table_cells(line: str) -> List[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [convert_inline(cell.strip()) for cell in inner.split("|")]


def _list_depth(indent: str) -> int:
    width = len(indent.replace("\t", "    "))
    return width // 2 + 1


def markdown_to_jira(markdown: Optional[str]) -> str:
    """Render a markdown document as Jira wiki markup."""
    if not markdown:
        return ""

    lines = markdown.replace("\r\n", "\n").split("\n")
    out: List[str] = []
    fence: Optional[str] = None
    i = 0
    while i < len(lines):
        line = lines[i]

        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence) and set(stripped) == {fence[0]}:
                out.append("{code}")
                fence = None
            else:
                out.append(line)
            i += 1
            continue

        m = _FENCE_RE.match(line)
        if m:
            fence = m.group("fence")
            lang = m.group("lang")
            out.append(f"{{code:{lang}}}" if lang else "{code}")
            i += 1
            continue

        if _TABLE_ROW_RE.match(line) and i + 1 < len(lines) and _TABLE_SEP_RE.match(lines[i + 1]):
            out.append("||" + "||".join(_table_cells(line)) + "||")
            i += 2
            while i < len(lines) and _TABLE_ROW_RE.match(lines[i]):
                out.append("|" + "|".join(_table_cells(lines[i])) + "|")
                i += 1
            continue

        m = _HEADING_RE.match(line)
        if m:
            out.append(f"h{len(m.group('level'))}. {convert_inline(m.group('text'))}")
        elif _RULE_RE.match(line):
            out.append("----")
        elif _QUOTE_RE.match(line):
            text = _QUOTE_RE.match(line).group("text")
            out.append(f"bq. {convert_inline(text)}" if text.strip() else "")
        elif _LIST_RE.match(line):
            m = _LIST_RE.match(line)
            bullet = "#" if m.group("marker")[0].isdigit() else "*"
            out.append(f"{bullet * _list_depth(m.group('indent'))} {convert_inline(m.group('text'))}")
        else:
            out.append(convert_inline(line))
        i += 1

    # Unterminated fence: close it so the rest of the comment renders.
    if fence is not None:
        out.append("{code}")

    return "\n".join(out)
