"""
Renders canonical text into a block tree stamped with source offsets.

Every block node records `anchor_offset`, the offset in the canonical text of
the block's first character. Every text leaf records `source_offset`, the
offset of its first character; a leaf's text is always a verbatim slice of the
canonical text, so inline markup never shifts positions. The document is a pure
function of the canonical text and the optional highlight span.

Supported markup: ATX headings, thematic breaks, bullet and ordered list
items, blockquotes, paragraphs; inline strong, emphasis and code spans.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .models import SelectionSpan


class NodeKind(str, Enum):
    ROOT = "root"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    THEMATIC_BREAK = "thematic_break"
    STRONG = "strong"
    EMPHASIS = "emphasis"
    CODE = "code"
    MARK = "mark"
    TEXT = "text"


BLOCK_KINDS = frozenset({
    NodeKind.HEADING, NodeKind.PARAGRAPH, NodeKind.LIST, NodeKind.LIST_ITEM,
    NodeKind.BLOCKQUOTE, NodeKind.THEMATIC_BREAK,
})


@dataclass(eq=False)
class Node:
    kind: NodeKind
    children: List["Node"] = field(default_factory=list)
    parent: Optional["Node"] = field(default=None, repr=False)
    anchor_offset: Optional[int] = None
    text: str = ""
    source_offset: Optional[int] = None
    level: int = 0
    ordered: bool = False
    is_content_region: bool = False

    def append(self, child: "Node") -> "Node":
        child.parent = self
        self.children.append(child)
        return child

    @property
    def is_block(self) -> bool:
        return self.kind in BLOCK_KINDS

    def iter_leaves(self) -> Iterator["Node"]:
        if self.kind == NodeKind.TEXT:
            yield self
            return
        for child in self.children:
            yield from child.iter_leaves()

    def text_content(self) -> str:
        return "".join(leaf.text for leaf in self.iter_leaves())

    def ancestors(self) -> Iterator["Node"]:
        """Yields this node, then each parent up to the root."""
        node: Optional[Node] = self
        while node is not None:
            yield node
            node = node.parent

    def nearest_anchored_block(self) -> Optional["Node"]:
        for node in self.ancestors():
            if node.is_block and node.anchor_offset is not None:
                return node
        return None

    def path(self) -> Tuple[int, ...]:
        indices = []
        node = self
        while node.parent is not None:
            indices.append(node.parent.children.index(node))
            node = node.parent
        return tuple(reversed(indices))


@dataclass
class RawSelection:
    """
    A selection event reported by the rendering layer.

    `anchor_*` is where the user started dragging and `focus_*` where they
    stopped; either may come first in document order. Character positions are
    offsets into the text of the given leaf node.
    """
    text: str
    anchor_node: Optional[Node]
    anchor_char: int
    focus_node: Optional[Node]
    focus_char: int
    bounds: Optional[Tuple[float, float, float, float]] = None  # left, top, width, height

    @property
    def is_collapsed(self) -> bool:
        return self.anchor_node is self.focus_node and self.anchor_char == self.focus_char


# --- block grammar ---

_LINE_RE = re.compile(r"[^\n]*\n?")
_HEADING_RE = re.compile(r"^( {0,3})(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_BREAK_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_ITEM_RE = re.compile(r"^([ \t]*)([-*+]|\d{1,9}[.)])[ \t]+(\S.*)$")
_QUOTE_RE = re.compile(r"^( {0,3}>[ \t]?)(.*)$")

# A run of rendered text: (source offset of first char, text)
Piece = Tuple[int, str]


class _Builder:
    """Walks the canonical text line by line and assembles the block tree."""

    def __init__(self, text: str, highlight: Optional[SelectionSpan]):
        self.text = text
        self.highlight = highlight
        self.root = Node(NodeKind.ROOT, is_content_region=True)
        self.open_block: Optional[Node] = None
        self.open_pieces: List[Piece] = []
        self.open_list: Optional[Node] = None
        self.open_quote: Optional[Node] = None
        self.after_blank = False

    def build(self) -> Node:
        offset = 0
        for match in _LINE_RE.finditer(self.text):
            raw = match.group(0)
            if not raw:
                break
            self._line(offset, raw)
            offset = match.end()
        self._close_inline_block()
        return self.root

    # -- block management --

    def _close_inline_block(self) -> None:
        if self.open_block is not None:
            _emit_inline(self.open_block, self.open_pieces, self.highlight)
        self.open_block = None
        self.open_pieces = []

    def _close_containers(self) -> None:
        self._close_inline_block()
        self.open_list = None
        self.open_quote = None

    def _start_inline_block(self, parent: Node, kind: NodeKind, anchor: int, **attrs) -> Node:
        self._close_inline_block()
        self.open_block = parent.append(Node(kind, anchor_offset=anchor, **attrs))
        return self.open_block

    def _continue_piece(self, start: int, content: str) -> None:
        # The newline ending the previous line is rendered as part of that line
        if self.open_pieces:
            prev_start, prev_text = self.open_pieces[-1]
            end = prev_start + len(prev_text)
            if self.text[end:end + 1] == "\n":
                self.open_pieces[-1] = (prev_start, prev_text + "\n")
        self.open_pieces.append((start, content))

    def _line(self, offset: int, raw: str) -> None:
        line = raw[:-1] if raw.endswith("\n") else raw
        if not line.strip():
            self._close_inline_block()
            self.open_quote = None
            self.after_blank = True
            return

        after_blank = self.after_blank
        self.after_blank = False

        m = _HEADING_RE.match(line)
        if m:
            self._close_containers()
            block = Node(NodeKind.HEADING, anchor_offset=offset + len(m.group(1)), level=len(m.group(2)))
            self.root.append(block)
            if m.group(3):
                _emit_inline(block, [(offset + m.start(3), m.group(3))], self.highlight)
            return

        if _BREAK_RE.match(line):
            self._close_containers()
            indent = len(line) - len(line.lstrip(" "))
            self.root.append(Node(NodeKind.THEMATIC_BREAK, anchor_offset=offset + indent))
            return

        m = _ITEM_RE.match(line)
        if m:
            ordered = m.group(2)[-1] in ".)"
            if self.open_list is None or self.open_list.ordered != ordered:
                self._close_containers()
                self.open_list = self.root.append(
                    Node(NodeKind.LIST, anchor_offset=offset + len(m.group(1)), ordered=ordered)
                )
            self._start_inline_block(self.open_list, NodeKind.LIST_ITEM, offset + len(m.group(1)))
            self.open_pieces.append((offset + m.start(3), m.group(3)))
            return

        m = _QUOTE_RE.match(line)
        if m:
            content = m.group(2)
            if self.open_quote is None:
                self._close_containers()
                self.open_quote = self.root.append(Node(NodeKind.BLOCKQUOTE, anchor_offset=offset + line.index(">")))
            stripped = content.lstrip()
            start = offset + len(m.group(1)) + (len(content) - len(stripped))
            if not stripped:
                self._close_inline_block()
            elif self.open_block is not None and self.open_block.parent is self.open_quote:
                self._continue_piece(start, stripped)
            else:
                self._start_inline_block(self.open_quote, NodeKind.PARAGRAPH, start)
                self.open_pieces.append((start, stripped))
            return

        stripped = line.lstrip()
        start = offset + (len(line) - len(stripped))
        if self.open_block is not None and not after_blank and self.open_quote is None:
            # Lazy continuation of the open paragraph or list item
            self._continue_piece(start, stripped)
            return

        self._close_containers()
        self._start_inline_block(self.root, NodeKind.PARAGRAPH, start)
        self.open_pieces.append((start, stripped))


# --- inline grammar ---

def _find_closer(s: str, delim: str, start: int, end: int) -> int:
    """Finds the closing delimiter for an emphasis run, or -1."""
    j = s.find(delim, start, end)
    while j != -1:
        run_end = j
        while run_end < end and s[run_end] == delim[0]:
            run_end += 1
        if len(delim) == 1 and run_end - j == 2:
            # A "**" pair closes a nested strong span, not this one
            j = s.find(delim, run_end, end)
            continue
        # Close on the last delimiters of the run so "***" ends both spans
        close = run_end - len(delim)
        if close > start and not s[close - 1].isspace():
            return close
        j = s.find(delim, run_end, end)
    return -1


def _parse_inline(s: str, start: int, end: int) -> list:
    """
    Parses s[start:end] into a list of ("text", a, b) runs and
    (kind, children) spans; positions index into s.
    """
    out: list = []
    text_start = start
    i = start
    while i < end:
        c = s[i]
        if c == "`":
            j = s.find("`", i + 1, end)
            if j > i + 1:
                if text_start < i:
                    out.append(("text", text_start, i))
                out.append((NodeKind.CODE, [("text", i + 1, j)]))
                i = text_start = j + 1
                continue
        elif c in "*_":
            delim = c * 2 if s.startswith(c * 2, i) else c
            inner = i + len(delim)
            if inner < end and not s[inner].isspace():
                j = _find_closer(s, delim, inner, end)
                if j != -1:
                    if text_start < i:
                        out.append(("text", text_start, i))
                    kind = NodeKind.STRONG if len(delim) == 2 else NodeKind.EMPHASIS
                    out.append((kind, _parse_inline(s, inner, j)))
                    i = text_start = j + len(delim)
                    continue
        i += 1
    if text_start < end:
        out.append(("text", text_start, end))
    return out


def _emit_inline(block: Node, pieces: List[Piece], highlight: Optional[SelectionSpan]) -> None:
    if not pieces:
        return
    rendered = "".join(text for _, text in pieces)
    # Local rendered index of each piece start, for mapping runs back to source
    starts: List[Tuple[int, int, int]] = []
    pos = 0
    for source, text in pieces:
        starts.append((pos, pos + len(text), source))
        pos += len(text)

    def emit_run(parent: Node, a: int, b: int) -> None:
        for lo, hi, source in starts:
            seg_a, seg_b = max(a, lo), min(b, hi)
            if seg_a < seg_b:
                _emit_leaf(parent, rendered[seg_a:seg_b], source + (seg_a - lo), highlight)

    def emit(parent: Node, items: list) -> None:
        for item in items:
            if item[0] == "text":
                emit_run(parent, item[1], item[2])
            else:
                emit(parent.append(Node(item[0])), item[1])

    emit(block, _parse_inline(rendered, 0, len(rendered)))


def _emit_leaf(parent: Node, text: str, source: int, highlight: Optional[SelectionSpan]) -> None:
    """Appends a text leaf, wrapping the part covered by the highlight in a mark node."""
    if highlight is None:
        parent.append(Node(NodeKind.TEXT, text=text, source_offset=source))
        return
    end = source + len(text)
    cuts = sorted({source, end, min(max(highlight.start, source), end), min(max(highlight.end, source), end)})
    for a, b in zip(cuts, cuts[1:]):
        leaf = Node(NodeKind.TEXT, text=text[a - source:b - source], source_offset=a)
        if highlight.start <= a and b <= highlight.end:
            parent.append(Node(NodeKind.MARK)).append(leaf)
        else:
            parent.append(leaf)


class RenderedDocument:
    """The rendered block tree plus lookups over its text leaves."""

    def __init__(self, canonical_text: str, root: Node):
        self.canonical_text = canonical_text
        self.root = root
        self.leaves: List[Node] = list(root.iter_leaves())
        self._order: Dict[int, int] = {id(leaf): i for i, leaf in enumerate(self.leaves)}

    @property
    def region(self) -> Node:
        return self.root

    def contains(self, node: Optional[Node]) -> bool:
        """True when the node lies inside the designated content region."""
        if node is None:
            return False
        return any(n.is_content_region and n is self.root for n in node.ancestors())

    def blocks(self) -> Iterator[Node]:
        stack = list(reversed(self.root.children))
        while stack:
            node = stack.pop()
            if node.is_block:
                yield node
            stack.extend(reversed(node.children))

    def order_of(self, node: Node) -> Optional[int]:
        return self._order.get(id(node))

    def _view(self) -> Tuple[str, List[Optional[Tuple[Node, int]]]]:
        """
        The text a selection spanning the whole document would report, with a
        (leaf, char) position per character. Between blocks the source
        whitespace separating them is reported, or a single newline when the
        source has block markup there; gaps for inline delimiters are empty.
        """
        chars: List[str] = []
        positions: List[Optional[Tuple[Node, int]]] = []
        prev: Optional[Node] = None
        for leaf in self.leaves:
            if prev is not None and prev.nearest_anchored_block() is not leaf.nearest_anchored_block():
                gap = self.canonical_text[prev.source_offset + len(prev.text):leaf.source_offset]
                if not gap or not gap.isspace():
                    gap = "\n"
                chars.extend(gap)
                positions.extend([None] * len(gap))
            for i, ch in enumerate(leaf.text):
                chars.append(ch)
                positions.append((leaf, i))
            prev = leaf
        return "".join(chars), positions

    def select(self, needle: str, occurrence: int = 0) -> Optional[RawSelection]:
        """
        Builds the selection event a user would produce by dragging over the
        given occurrence of `needle` in the rendered text. Returns None when
        it does not occur.
        """
        view, positions = self._view()
        index = -1
        for _ in range(occurrence + 1):
            index = view.find(needle, index + 1)
            if index == -1:
                return None
        end = index + len(needle)
        if not any(positions[i] is not None for i in range(index, end)):
            return None

        if positions[index] is not None:
            anchor_node, anchor_char = positions[index]
        else:
            # Starts in the gap after a block: anchor at the end of that block's last leaf
            before = [p for p in positions[:index] if p is not None]
            anchor_node, last_char = before[-1]
            anchor_char = last_char + 1

        focus_node, last_char = [p for p in positions[index:end] if p is not None][-1]
        return RawSelection(
            text=needle,
            anchor_node=anchor_node,
            anchor_char=anchor_char,
            focus_node=focus_node,
            focus_char=last_char + 1,
        )


def render_document(canonical_text: str, highlight: Optional[SelectionSpan] = None) -> RenderedDocument:
    """
    Converts canonical text into an anchored block tree.

    Args:
        canonical_text: The authoritative transcription text.
        highlight: Optional span to mark; does not change any offset.

    Returns:
        The rendered document.
    """
    if highlight is not None and not highlight.fits(canonical_text):
        highlight = None
    root = _Builder(canonical_text, highlight).build()
    return RenderedDocument(canonical_text, root)
