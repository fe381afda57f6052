"""Maps a selection in the rendered document back to a span of the canonical text."""

import logging
from typing import Optional, Tuple

from .models import SelectionSpan
from .rendering import Node, RawSelection, RenderedDocument
from .utils import preview

logger = logging.getLogger(__name__)

class SelectionCorrelator:
    """
    Correlates raw selection events with offsets in the canonical text.

    Offsets are measured relative to the anchor of the block holding the start
    of the selection: the characters of that block's rendered text before the
    selection start, plus the leading whitespace of the selected string. The
    resulting rendered index is translated to a source offset through the text
    leaf that holds it, so inline markup earlier in the block does not shift
    the result. A span is only returned when the canonical text at that offset
    is exactly the trimmed selection; selections whose rendered characters are
    not contiguous in the source yield no span.
    """

    def __init__(self, document: RenderedDocument):
        self.document = document

    def selected_text(self, raw: Optional[RawSelection]) -> Optional[str]:
        """The trimmed selected text, or None when nothing usable is selected."""
        if raw is None or raw.is_collapsed:
            return None
        if not (self.document.contains(raw.anchor_node) or self.document.contains(raw.focus_node)):
            return None
        text = raw.text.strip()
        return text or None

    def correlate(self, raw: Optional[RawSelection], canonical_text: str) -> Optional[SelectionSpan]:
        """
        Computes the canonical-text span of a selection.

        Args:
            raw: The selection event from the rendering layer.
            canonical_text: The text the document was rendered from.

        Returns:
            The span, or None when there is no usable selection or its offset
            cannot be determined.
        """
        if raw is None or raw.anchor_node is None or raw.focus_node is None or raw.is_collapsed:
            return None
        if not (self.document.contains(raw.anchor_node) or self.document.contains(raw.focus_node)):
            logger.debug("Selection lies outside the content region; ignoring.")
            return None

        trimmed = raw.text.strip()
        if not trimmed:
            return None

        if canonical_text != self.document.canonical_text:
            logger.warning("Rendered document is stale relative to the canonical text; cannot correlate selection.")
            return None

        start_node, start_char = self._start_point(raw)
        if not self.document.contains(start_node):
            logger.debug("Selection starts outside the content region; offset not computable.")
            return None

        block = start_node.nearest_anchored_block()
        if block is None:
            logger.debug("No anchored block encloses the selection start; offset not computable.")
            return None

        local = self._local_offset(block, start_node, start_char)
        if local is None:
            return None

        lead = len(raw.text) - len(raw.text.lstrip())
        start = self._source_start(block, local + lead)
        end = start + len(trimmed)
        if canonical_text[start:end] != trimmed:
            # Markup or indentation between the rendered characters, or a jump to another block
            logger.debug(f"Selection '{preview(trimmed)}' is not a verbatim slice of the source at {start}; offset not computable.")
            return None

        if start < 0 or end <= start or end > len(canonical_text):
            logger.warning(f"Correlated span [{start}, {end}) falls outside the canonical text; discarding.")
            return None
        span = SelectionSpan(start=start, length=end - start)
        logger.debug(f"Selection '{preview(trimmed)}' correlated to {span}")
        return span

    def selection_anchor_point(self, raw: Optional[RawSelection]) -> Optional[Tuple[float, float]]:
        """Top-center of the selection's bounding box, for placing the action buttons."""
        if raw is None or raw.bounds is None or raw.is_collapsed:
            return None
        left, top, width, _height = raw.bounds
        return (left + width / 2, top)

    def _start_point(self, raw: RawSelection) -> Tuple[Node, int]:
        anchor = (raw.anchor_node, raw.anchor_char)
        focus = (raw.focus_node, raw.focus_char)
        anchor_order = self.document.order_of(raw.anchor_node)
        focus_order = self.document.order_of(raw.focus_node)
        if anchor_order is None or focus_order is None:
            return anchor if anchor_order is not None else focus
        if (focus_order, raw.focus_char) < (anchor_order, raw.anchor_char):
            return focus
        return anchor

    @staticmethod
    def _local_offset(block: Node, node: Node, char: int) -> Optional[int]:
        count = 0
        for leaf in block.iter_leaves():
            if leaf is node:
                return count + char
            count += len(leaf.text)
        return None

    @staticmethod
    def _source_delta(block: Node, index: int) -> int:
        """Offset, relative to the block anchor, of the source char rendered at `index`."""
        pos = 0
        for leaf in block.iter_leaves():
            if index < pos + len(leaf.text):
                return leaf.source_offset + (index - pos) - block.anchor_offset
            pos += len(leaf.text)
        raise IndexError(f"Rendered index {index} outside block of length {pos}")

    def _source_start(self, block: Node, first: int) -> int:
        """Source offset of the rendered character at `first`, continuing past the block end."""
        rendered = block.text_content()
        if first < len(rendered):
            return block.anchor_offset + self._source_delta(block, first)
        if not rendered:
            return block.anchor_offset + first
        # Past the block's text: continue through the whitespace that follows it in the source
        block_end = block.anchor_offset + self._source_delta(block, len(rendered) - 1) + 1
        return block_end + (first - len(rendered))
