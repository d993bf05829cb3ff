"""
Abbreviation tracking and expansion engine.

Each editor gets an AbbreviationSession. The session watches change and
selection events coming from an EditorHost, keeps one candidate span per
cursor while the user types a leader-prefixed abbreviation (e.g. \\alpha),
underlines those spans, and when the abbreviation is finished (space, closing
bracket, another leader, or the explicit convert command) asks the host to
replace every span with its symbol in one batch.

Offsets are absolute character positions in the buffer.
"""

import re
import logging
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional

logger = logging.getLogger(__name__)

DEFAULT_LEADER = '\\'

# Whitespace, or text ending in a closing bracket (an auto-closed pair such as {} included)
COMPLETING_TEXT = re.compile(r'^\s+|[^{(]?[)}⟩]$')

# Typed right after the leader, these expand at once into a bracket pair.
# The second item is the closing literal that must follow the cursor (and is consumed).
BRACKET_PAIRS = {
    '{{': ('⦃⦄', '}}'),
    '[[': ('⟦⟧', ']]'),
    '<>': ('⟨⟩', ''),
}

_TRAILING_RUN = re.compile(r'\S*$')


class Range(NamedTuple):
    start: int
    end: int


class Selection(NamedTuple):
    anchor: int
    position: int

    @property
    def is_empty(self) -> bool:
        return self.anchor == self.position


class ContentChange(NamedTuple):
    start: int
    removed: int
    text: str


class ChangeEvent(NamedTuple):
    changes: List[ContentChange]
    selections: List[Selection]


class TextEdit(NamedTuple):
    """Replace range with text. When caret is set, cursor cursor_index lands caret chars into text."""
    range: Range
    text: str
    cursor_index: Optional[int] = None
    caret: Optional[int] = None


class CandidateSpan(NamedTuple):
    cursor_index: int
    range: Range
    text: str


class EditorHost(ABC):
    """What the engine needs from an editor: read access, an edit sink and a decoration sink."""

    @abstractmethod
    def selections(self) -> List[Selection]:
        ...

    @abstractmethod
    def line_prefix(self, offset: int) -> str:
        """Text from the start of the line containing offset up to offset."""

    @abstractmethod
    def text_range(self, start: int, end: int) -> str:
        ...

    @abstractmethod
    def apply_edits(self, edits: List[TextEdit]) -> None:
        """Apply a batch of non-overlapping edits. May complete later; the engine never waits."""

    @abstractmethod
    def set_decorations(self, ranges: List[Range]) -> None:
        """Replace the full set of abbreviation decorations."""


def find_replacement(table, abbrev):
    """
    Resolve a typed abbreviation (without the leader) to its replacement.

    Exact matches win, then the shortest abbreviation extending what was
    typed. Failing both, the last character is peeled off and kept literally
    behind whatever its prefix resolves to. Returns None when nothing matches.
    """
    kept = ''
    while abbrev:
        symbol = table.lookup(abbrev)
        if symbol is None:
            extension = table.shortest_extension(abbrev)
            if extension is not None:
                symbol = table.lookup(extension)
        if symbol is not None:
            return symbol + kept
        abbrev, kept = abbrev[:-1], abbrev[-1] + kept
    return None


def scan_abbreviation(line_prefix, leader=DEFAULT_LEADER):
    """
    Scan backwards over the run of non-whitespace characters ending the line
    prefix for the nearest leader. Returns the leader plus what follows it, or None.
    """
    run = _TRAILING_RUN.search(line_prefix).group()
    idx = run.rfind(leader)
    if idx == -1:
        return None
    return run[idx:]


def map_position(offset, edits):
    """Map a pre-edit offset through a batch of non-overlapping edits."""
    delta = 0
    for edit in sorted(edits, key=lambda e: e.range.start):
        start, end = edit.range
        if offset >= end:
            delta += len(edit.text) - (end - start)
            continue
        if offset > start:
            # Inside a replaced range: land after the replacement
            return start + delta + len(edit.text)
        break
    return offset + delta


def cursor_positions(selections, edits):
    """Post-edit cursor offsets for every selection; explicit carets win over mapping."""
    carets = {e.cursor_index: e for e in edits if e.cursor_index is not None and e.caret is not None}
    positions = []
    for i, sel in enumerate(selections):
        edit = carets.get(i)
        if edit is not None:
            positions.append(map_position(edit.range.start, edits) + edit.caret)
        else:
            positions.append(map_position(sel.position, edits))
    return positions


class AbbreviationSession:
    """Per-editor abbreviation state machine."""

    def __init__(self, host: EditorHost, table, leader: str = DEFAULT_LEADER, on_state_changed=None):
        self.host = host
        self.table = table
        self.leader = leader
        self.on_state_changed = on_state_changed
        self.active = False
        self.spans: List[CandidateSpan] = []

    # ---------------------- State ----------------------
    def _set_active(self, active):
        if self.active == active:
            return
        self.active = active
        logger.debug("Abbreviation session %s", "activated" if active else "deactivated")
        if self.on_state_changed:
            self.on_state_changed(active)

    def deactivate(self):
        self.spans = []
        self._set_active(False)
        self.host.set_decorations([])

    def reset(self, table=None, leader=None):
        """Drop pending spans and optionally swap in a new table or leader."""
        if table is not None:
            self.table = table
        if leader:
            self.leader = leader
        self.deactivate()

    # ---------------------- Events ----------------------
    def on_change(self, event: ChangeEvent):
        if not event.changes:
            # Save-only notifications carry no content change
            return
        if self._is_ambiguous(event):
            return self.deactivate()
        text = event.changes[0].text
        if not self.active:
            if text == self.leader:
                self._update(event.selections)
            return
        if text == self.leader:
            # Close the abbreviation before the new leader, then start tracking the new one
            self.convert(event.selections, shift=len(text))
            self._update(event.selections)
        elif COMPLETING_TEXT.search(text):
            self.convert(event.selections, shift=len(text))
        else:
            self._update(event.selections)

    def on_selection_changed(self, selections: List[Selection]):
        if not self.active:
            return
        self._update(selections)

    def _is_ambiguous(self, event):
        if any(not s.is_empty for s in event.selections):
            return True
        # A multi-caret keystroke inserts the same text at every caret; that is still one change
        return len({c.text for c in event.changes}) > 1

    # ---------------------- Spans ----------------------
    def _collect_spans(self, selections, shift=0):
        """Re-derive spans from scratch. shift moves each cursor back over freshly typed text."""
        if any(not s.is_empty for s in selections):
            return []
        spans = []
        for i, sel in enumerate(selections):
            offset = sel.position - shift
            if offset < 0:
                continue
            text = scan_abbreviation(self.host.line_prefix(offset), self.leader)
            if text is None:
                continue
            spans.append(CandidateSpan(i, Range(offset - len(text), offset), text))
        return spans

    def _bracket_edit(self, span):
        pair = BRACKET_PAIRS.get(span.text[len(self.leader):])
        if pair is None:
            return None
        glyphs, closing = pair
        end = span.range.end
        if closing:
            if self.host.text_range(end, end + len(closing)) != closing:
                return None
            end += len(closing)
        return TextEdit(Range(span.range.start, end), glyphs, span.cursor_index, len(glyphs) // 2)

    def _update(self, selections):
        spans = self._collect_spans(selections)
        if not spans:
            return self.deactivate()
        edits = []
        tracked = []
        for span in spans:
            edit = self._bracket_edit(span)
            if edit is not None:
                edits.append(edit)
            else:
                tracked.append(span)
        if edits:
            logger.debug("Expanding %d bracket pair(s)", len(edits))
            self.host.apply_edits(edits)
        if not tracked:
            return self.deactivate()
        self.spans = tracked
        self._set_active(True)
        self.host.set_decorations([s.range for s in tracked])

    # ---------------------- Resolution ----------------------
    def convert(self, selections=None, shift=0):
        """
        Replace every tracked abbreviation with its symbol, as one batch.

        The request is fire-and-forget: the session deactivates right after
        issuing it and never looks at the result. Returns the issued edits.
        """
        if not self.active:
            return []
        if selections is None:
            selections = self.host.selections()
        edits = []
        for span in self._collect_spans(selections, shift):
            if len(span.text) <= len(self.leader):
                continue
            replacement = find_replacement(self.table, span.text[len(self.leader):])
            if replacement is None:
                logger.debug("No translation for %r", span.text)
                continue
            edits.append(TextEdit(span.range, replacement, span.cursor_index))
        if edits:
            logger.debug("Converting %d abbreviation(s)", len(edits))
            self.host.apply_edits(edits)
        self.deactivate()
        return edits
