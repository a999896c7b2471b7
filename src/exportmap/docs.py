"""
Documentation comment parsing.

Two styles are understood:

* ``jsdoc`` - ``/** ... */`` blocks with ``@tag {type} name description``
  lines, unwrapped the way doctrine does it.
* ``tomdoc`` - a leading run of comments whose first paragraph starts with a
  status word: ``Public:``, ``Internal:`` or ``Deprecated:``.

Parsing never raises: tags that cannot be parsed are dropped, and comments
that are not documentation yield None.
"""

import re
from typing import Callable, Dict, List, Optional, Sequence

from exportmap.logger import logger
from exportmap.models import CommentKind, DocBlock, DocStyle, DocTag
from exportmap.parsers import ParsedComment, ParsedModule

_TAG_RE = re.compile(r"^@([A-Za-z_][\w.\-]*)")
_UNWRAP_RE = re.compile(r"^\s*\*? ?")
_TOMDOC_STATUS_RE = re.compile(r"^(Public|Internal|Deprecated):\s*(.+)", re.DOTALL)

# Tags whose first word after the type is a parameter/property name
_NAMED_TAGS = frozenset(
    {"param", "arg", "argument", "property", "prop", "typedef", "callback", "template"}
)
_MODULE_TAGS = frozenset({"module", "file", "fileoverview", "overview"})


def is_jsdoc(text: str) -> bool:
    return text.startswith("/**") and not text.startswith("/***") and text != "/**/"


def unwrap_jsdoc(text: str) -> List[str]:
    body = text[3:]
    if body.endswith("*/"):
        body = body[:-2]
    return [_UNWRAP_RE.sub("", line, count=1).rstrip() for line in body.splitlines()]


def _read_type(rest: str) -> tuple[Optional[str], str]:
    """
    Split a leading ``{...}`` type expression off *rest*. Raises ValueError
    when the braces are unbalanced.
    """
    if not rest.startswith("{"):
        return None, rest
    depth = 0
    for idx, ch in enumerate(rest):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return rest[1:idx].strip(), rest[idx + 1 :].lstrip()
    raise ValueError("unterminated type expression")


def parse_tag(raw: str) -> Optional[DocTag]:
    m = _TAG_RE.match(raw)
    if not m:
        return None
    title = m.group(1)
    rest = raw[m.end() :].strip()
    try:
        type_expr, rest = _read_type(rest)
    except ValueError as exc:
        logger.debug("Skipping malformed doc tag", tag=title, error=str(exc))
        return None

    name = None
    if title in _NAMED_TAGS and rest:
        parts = rest.split(None, 1)
        name = parts[0]
        rest = parts[1] if len(parts) > 1 else ""
        if name.startswith("[") and not name.endswith("]"):
            # optional parameter with a default containing spaces: [a = 1]
            close = rest.find("]")
            if close < 0:
                logger.debug("Skipping malformed doc tag", tag=title, name=name)
                return None
            name = f"{name} {rest[: close + 1]}"
            rest = rest[close + 1 :]

    description = rest.strip()
    return DocTag(
        title=title,
        description=description or None,
        type=type_expr,
        name=name,
    )


def parse_jsdoc(text: str) -> Optional[DocBlock]:
    if not is_jsdoc(text):
        return None

    description_lines: List[str] = []
    raw_tags: List[List[str]] = []
    for line in unwrap_jsdoc(text):
        stripped = line.strip()
        if _TAG_RE.match(stripped):
            raw_tags.append([stripped])
        elif raw_tags:
            raw_tags[-1].append(stripped)
        else:
            description_lines.append(stripped)

    tags: List[DocTag] = []
    for chunk in raw_tags:
        tag = parse_tag("\n".join(chunk).strip())
        if tag is not None:
            tags.append(tag)

    return DocBlock(
        description="\n".join(description_lines).strip(),
        tags=tags,
        style=DocStyle.JSDOC,
    )


def _comment_body(comment: ParsedComment) -> str:
    text = comment.text
    if comment.kind == CommentKind.LINE:
        return text[2:] if text.startswith("//") else text
    body = text[2:]
    if body.endswith("*/"):
        body = body[:-2]
    return body


def capture_jsdoc(comments: Sequence[ParsedComment]) -> Optional[DocBlock]:
    # the block closest to the declaration wins
    doc: Optional[DocBlock] = None
    for comment in comments:
        if comment.kind != CommentKind.BLOCK:
            continue
        parsed = parse_jsdoc(comment.text)
        if parsed is not None:
            doc = parsed
    return doc


def capture_tomdoc(comments: Sequence[ParsedComment]) -> Optional[DocBlock]:
    lines: List[str] = []
    for comment in comments:
        body = _comment_body(comment)
        if not body.strip():
            break
        lines.append(body.strip())
    m = _TOMDOC_STATUS_RE.match(" ".join(lines))
    if not m:
        return None
    description = m.group(2).strip()
    return DocBlock(
        description=description,
        tags=[DocTag(title=m.group(1).lower(), description=description)],
        style=DocStyle.TOMDOC,
    )


DOC_STYLE_PARSERS: Dict[DocStyle, Callable[[Sequence[ParsedComment]], Optional[DocBlock]]] = {
    DocStyle.JSDOC: capture_jsdoc,
    DocStyle.TOMDOC: capture_tomdoc,
}


def capture_doc(
    styles: Sequence[DocStyle], *comment_groups: Sequence[ParsedComment]
) -> Optional[DocBlock]:
    """
    Return documentation for a declaration. *comment_groups* are the leading
    comments of the candidate nodes, innermost first; the first non-empty
    group decides, and within it the last configured style that matches wins.
    """
    for comments in comment_groups:
        if not comments:
            continue
        doc: Optional[DocBlock] = None
        for style in styles:
            parser = DOC_STYLE_PARSERS.get(style)
            found = parser(comments) if parser is not None else None
            if found is not None:
                doc = found
        return doc
    return None


def find_module_doc(module: ParsedModule) -> Optional[DocBlock]:
    """
    Module level documentation: the first top-level JSDoc block tagged
    @module/@file/@fileoverview/@overview, or else a JSDoc block before the
    first statement that does not document a declaration.
    """
    first_line = module.first_statement_line
    leading: List[tuple[ParsedComment, DocBlock]] = []
    for comment in module.comments:
        if comment.kind != CommentKind.BLOCK:
            continue
        doc = parse_jsdoc(comment.text)
        if doc is None:
            continue
        if any(t.title in _MODULE_TAGS for t in doc.tags):
            return doc
        if first_line is None or comment.end_line < first_line:
            leading.append((comment, doc))

    attached = set(module.declaration_comment_bytes)
    for comment, doc in leading:
        if comment.start_byte not in attached:
            return doc
    return None
