"""Coordinates the explain / alternate-translation actions on a text selection."""

import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type

from .correlator import SelectionCorrelator
from .exceptions import AlternatesError, ExplanationError, TibetScribeError
from .explainer import SelectionExplainer
from .models import ActionState, SelectionSpan
from .pipeline import PipelineOrchestrator
from .rendering import RawSelection, RenderedDocument, render_document
from .utils import preview

logger = logging.getLogger(__name__)

EXPLAIN = "explain"
ALTERNATES = "alternates"

class SelectionActionCoordinator:
    """
    Holds the current selection and runs the two selection actions.

    Selection state is independent of the pipeline run, but is cleared
    whenever the orchestrator starts a run, enters edit mode or resets.
    """

    def __init__(self, orchestrator: PipelineOrchestrator, explainer: SelectionExplainer):
        self.orchestrator = orchestrator
        self.explainer = explainer
        self.document: Optional[RenderedDocument] = None
        self.selected_text: Optional[str] = None
        self.span: Optional[SelectionSpan] = None
        self.highlight: Optional[SelectionSpan] = None
        self.anchor_point: Optional[Tuple[float, float]] = None
        self.explanation = ActionState()
        self.alternates = ActionState()
        self._generation = 0
        self._sequence: Dict[str, int] = {EXPLAIN: 0, ALTERNATES: 0}
        orchestrator.subscribe_invalidation(self.clear_selection)

    def render(self) -> Optional[RenderedDocument]:
        """Renders the current canonical text with the highlight overlay."""
        text = self.orchestrator.canonical_text
        if text is None or self.orchestrator.run.editing:
            self.document = None
            return None
        self.document = render_document(text, self.highlight)
        return self.document

    def select(self, raw: Optional[RawSelection]) -> Optional[SelectionSpan]:
        """
        Records a selection event from the rendered document.

        Returns:
            The correlated span, or None. The selected text is kept even when
            its offset cannot be determined.
        """
        canonical_text = self.orchestrator.canonical_text
        if self.document is None or canonical_text is None or self.orchestrator.run.editing:
            self.deselect()
            return None

        correlator = SelectionCorrelator(self.document)
        text = correlator.selected_text(raw)
        if text is None:
            self.deselect()
            return None

        span = correlator.correlate(raw, canonical_text)
        if text != self.selected_text:
            self._generation += 1
            self.explanation.clear()
            self.alternates.clear()
        elif span != self.span:
            # Same phrase elsewhere: results stay, requests for the old span are dropped
            self._generation += 1
            self._abandon_in_flight()
        self.selected_text = text
        self.span = span
        self.anchor_point = correlator.selection_anchor_point(raw)
        logger.debug(f"Selected '{preview(text)}' -> {self.span}")
        return self.span

    def _abandon_in_flight(self) -> None:
        for state in (self.explanation, self.alternates):
            if state.loading:
                state.clear()
                self.highlight = None

    def deselect(self) -> None:
        """Forgets the current selection; results and highlight stay visible."""
        self.selected_text = None
        self.span = None
        self.anchor_point = None

    def clear_selection(self) -> None:
        """Drops the selection, highlight and both action results."""
        self._generation += 1
        self.deselect()
        self.highlight = None
        self.explanation.clear()
        self.alternates.clear()
        self.document = None

    async def explain(self) -> None:
        await self._run(EXPLAIN, self.explanation, self.alternates, self.explainer.explain, ExplanationError)

    async def get_alternates(self) -> None:
        await self._run(ALTERNATES, self.alternates, self.explanation, self.explainer.alternates, AlternatesError)

    async def _run(
        self,
        name: str,
        state: ActionState,
        other: ActionState,
        call: Callable[[str, str, str], Awaitable[str]],
        error_cls: Type[TibetScribeError],
    ) -> None:
        canonical_text = self.orchestrator.canonical_text
        translation = self.orchestrator.translation
        if not canonical_text or not translation or self.span is None or not self.selected_text:
            logger.debug(f"Ignoring {name} request: selection, text or translation missing.")
            return

        generation = self._generation
        self._sequence[name] += 1
        sequence = self._sequence[name]
        other.clear()
        state.loading = True
        state.result = None
        state.error = None
        self.highlight = self.span

        try:
            result = await call(self.selected_text, canonical_text, translation)
        except error_cls as e:
            if self._is_stale(name, generation, sequence, state):
                return
            state.loading = False
            state.error = str(e)
            self.highlight = None
            logger.warning(f"Selection {name} failed: {e}")
            return

        if self._is_stale(name, generation, sequence, state):
            logger.debug(f"Discarding stale {name} result.")
            return
        state.loading = False
        state.result = result

    def _is_stale(self, name: str, generation: int, sequence: int, state: ActionState) -> bool:
        # `loading` is reset when the other action starts or the selection is cleared
        return generation != self._generation or sequence != self._sequence[name] or not state.loading
