"""
Conversion between markdown-flavoured text and Atlassian Document Format (ADF).

Jira Cloud stores rich-text fields (descriptions, comments, custom "doc" fields)
as ADF trees. The LLM writes markdown, so everything it produces passes through
`markdown_to_adf` before reaching Jira, and ADF coming back from Jira is shown
to the LLM and the user through `adf_to_markdown`.
"""

import re
from typing import Any, Dict, List, Optional, Union

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
BULLET_RE = re.compile(r"^(\s*)([-*])\s+(.+)$")
NUMBERED_RE = re.compile(r"^(\s*)(\d+)\.\s+(.+)$")

LIST_NODE = {"ul": "bulletList", "ol": "orderedList"}


def empty_doc() -> Dict[str, Any]:
    return {"type": "doc", "version": 1, "content": []}


def text_node(text: str, marks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "text", "text": text}
    if marks:
        node["marks"] = marks
    return node


def paragraph(content: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "paragraph", "content": content}


def heading(level: int, text: str) -> Dict[str, Any]:
    return {"type": "heading", "attrs": {"level": level}, "content": [text_node(text)]}


def list_item(content: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "listItem", "content": [paragraph(content)]}


def text_paragraph_doc(text: str) -> Dict[str, Any]:
    """Wraps plain text in a single-paragraph ADF document."""
    doc = empty_doc()
    doc["content"].append(paragraph([text_node(text)]))
    return doc


def format_description(description: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Returns an ADF document for a description.

    An ADF dict is passed through untouched; strings are treated as markdown.
    """
    if isinstance(description, dict):
        return description
    return markdown_to_adf(description)


def markdown_to_adf(markdown: str) -> Dict[str, Any]:
    """
    Converts markdown text to an ADF document.

    Supports headings, bullet and numbered lists, fenced code blocks and
    paragraphs. Inline bold, italic, strikethrough, code and links are handled by
    `parse_inline_markdown`.
    """
    doc = empty_doc()
    if not markdown:
        return doc

    content = doc["content"]
    list_items: List[Dict[str, Any]] = []
    list_type: Optional[str] = None
    in_code_block = False
    code_language = "text"
    code_lines: List[str] = []

    def flush_list():
        nonlocal list_items, list_type
        if list_items:
            content.append({"type": LIST_NODE[list_type], "content": list_items})
        list_items = []
        list_type = None

    for line in markdown.split("\n"):
        stripped = line.strip()

        if stripped.startswith("```"):
            if in_code_block:
                content.append(
                    {
                        "type": "codeBlock",
                        "attrs": {"language": code_language},
                        "content": [text_node("\n".join(code_lines) + "\n")],
                    }
                )
                code_lines = []
                in_code_block = False
            else:
                flush_list()
                in_code_block = True
                code_language = stripped[3:].strip() or "text"
            continue

        if in_code_block:
            code_lines.append(line)
            continue

        if not stripped:
            flush_list()
            continue

        heading_match = HEADING_RE.match(line)
        if heading_match:
            flush_list()
            content.append(
                {
                    "type": "heading",
                    "attrs": {"level": len(heading_match.group(1))},
                    "content": parse_inline_markdown(heading_match.group(2)),
                }
            )
            continue

        bullet_match = BULLET_RE.match(line)
        if bullet_match:
            if list_type and list_type != "ul":
                flush_list()
            list_type = "ul"
            list_items.append(list_item(parse_inline_markdown(bullet_match.group(3))))
            continue

        numbered_match = NUMBERED_RE.match(line)
        if numbered_match:
            if list_type and list_type != "ol":
                flush_list()
            list_type = "ol"
            list_items.append(
                list_item(parse_inline_markdown(numbered_match.group(3)))
            )
            continue

        flush_list()
        content.append(paragraph(parse_inline_markdown(line)))

    flush_list()

    # unterminated fence: keep what we collected
    if in_code_block and code_lines:
        content.append(
            {
                "type": "codeBlock",
                "attrs": {"language": code_language},
                "content": [text_node("\n".join(code_lines) + "\n")],
            }
        )

    return doc


def parse_inline_markdown(text: str) -> List[Dict[str, Any]]:
    """
    Splits a line of markdown into ADF text nodes with marks.

    An opening marker without a closing one runs to the end of the line.
    """
    nodes: List[Dict[str, Any]] = []
    buffer = ""
    i = 0
    length = len(text)

    def flush():
        nonlocal buffer
        if buffer:
            nodes.append(text_node(buffer))
            buffer = ""

    def take_until(marker: str, start: int):
        end = text.find(marker, start)
        if end == -1:
            end = length
        return text[start:end], end + len(marker)

    while i < length:
        pair = text[i : i + 2]

        if pair == "**" and i + 2 < length:
            flush()
            inner, i = take_until("**", i + 2)
            nodes.append(text_node(inner, [{"type": "strong"}]))
            continue

        if pair == "~~" and i + 2 < length:
            flush()
            inner, i = take_until("~~", i + 2)
            nodes.append(text_node(inner, [{"type": "strike"}]))
            continue

        char = text[i]

        if char in "*_" and i + 1 < length and text[i + 1] != char:
            flush()
            inner, i = take_until(char, i + 1)
            nodes.append(text_node(inner, [{"type": "em"}]))
            continue

        if char == "`":
            flush()
            inner, i = take_until("`", i + 1)
            nodes.append(text_node(inner, [{"type": "code"}]))
            continue

        if char == "[":
            label_end = text.find("]", i + 1)
            if label_end != -1 and text[label_end + 1 : label_end + 2] == "(":
                url_end = text.find(")", label_end + 2)
                if url_end != -1:
                    flush()
                    nodes.append(
                        text_node(
                            text[i + 1 : label_end],
                            [
                                {
                                    "type": "link",
                                    "attrs": {"href": text[label_end + 2 : url_end]},
                                }
                            ],
                        )
                    )
                    i = url_end + 1
                    continue

        buffer += char
        i += 1

    flush()
    return nodes


MARK_WRAPPERS = {"strong": "**", "em": "*", "code": "`", "strike": "~~"}


def _inline_to_markdown(nodes: List[Dict[str, Any]]) -> str:
    parts = []
    for node in nodes or []:
        if node.get("type") == "hardBreak":
            parts.append("\n")
            continue
        if node.get("type") == "mention":
            parts.append(node.get("attrs", {}).get("text", ""))
            continue
        text = node.get("text", "")
        for mark in node.get("marks", []):
            if mark.get("type") == "link":
                text = f"[{text}]({mark.get('attrs', {}).get('href', '')})"
            elif mark.get("type") in MARK_WRAPPERS:
                wrapper = MARK_WRAPPERS[mark["type"]]
                text = f"{wrapper}{text}{wrapper}"
        parts.append(text)
    return "".join(parts)


def _block_to_markdown(node: Dict[str, Any]) -> List[str]:
    node_type = node.get("type")
    children = node.get("content", [])

    if node_type == "heading":
        level = node.get("attrs", {}).get("level", 1)
        return ["#" * level + " " + _inline_to_markdown(children)]
    if node_type == "paragraph":
        return [_inline_to_markdown(children)]
    if node_type in ("bulletList", "orderedList"):
        lines = []
        for index, item in enumerate(children, start=1):
            prefix = "-" if node_type == "bulletList" else f"{index}."
            item_lines = []
            for block in item.get("content", []):
                item_lines.extend(_block_to_markdown(block))
            lines.append(f"{prefix} " + " ".join(l for l in item_lines if l))
        return lines
    if node_type == "codeBlock":
        language = node.get("attrs", {}).get("language") or ""
        code = "".join(child.get("text", "") for child in children).rstrip("\n")
        return [f"```{language}", code, "```"]
    if node_type == "blockquote":
        lines = []
        for block in children:
            lines.extend("> " + l for l in _block_to_markdown(block))
        return lines
    if node_type == "rule":
        return ["---"]

    lines = []
    for block in children:
        lines.extend(_block_to_markdown(block))
    return lines


def adf_to_markdown(doc: Optional[Dict[str, Any]]) -> str:
    """Renders an ADF document back to markdown. Unknown nodes keep their text."""
    if not doc:
        return ""
    if isinstance(doc, str):
        return doc

    blocks = [_block_to_markdown(node) for node in doc.get("content", [])]
    return "\n\n".join("\n".join(lines) for lines in blocks if lines)


def _bullets(node_type: str, items: List[str]) -> Dict[str, Any]:
    return {"type": node_type, "content": [list_item([text_node(i)]) for i in items]}


def default_description(issue_type: str, summary: str) -> Dict[str, Any]:
    """Builds a placeholder description document for the given issue type."""
    doc = empty_doc()
    content = doc["content"]
    content.append({"type": "heading", "attrs": {"level": 2}, "content": [text_node(summary)]})

    kind = (issue_type or "").lower()
    if kind == "epic":
        content.extend(
            [
                heading(3, "Epic Overview"),
                paragraph([text_node("This epic covers...")]),
                heading(3, "Goals"),
                _bullets("bulletList", ["Goal 1", "Goal 2"]),
                heading(3, "Success Criteria"),
                paragraph([text_node("This epic will be considered successful when...")]),
            ]
        )
    elif kind == "story":
        content.extend(
            [
                heading(3, "User Story"),
                paragraph(
                    [text_node("As a [type of user], I want [goal] so that [benefit].")]
                ),
                heading(3, "Acceptance Criteria"),
                _bullets("bulletList", ["Criterion 1", "Criterion 2"]),
            ]
        )
    elif kind == "bug":
        content.extend(
            [
                heading(3, "Description"),
                paragraph([text_node("Describe the bug here...")]),
                heading(3, "Steps to Reproduce"),
                _bullets("orderedList", ["Step 1", "Step 2"]),
                heading(3, "Expected Behavior"),
                paragraph([text_node("What should happen...")]),
                heading(3, "Actual Behavior"),
                paragraph([text_node("What actually happens...")]),
            ]
        )
    else:
        content.extend(
            [
                heading(3, "Description"),
                paragraph([text_node("Describe the task here...")]),
                heading(3, "Acceptance Criteria"),
                _bullets("bulletList", ["Criterion 1"]),
            ]
        )

    return doc
