"""
Shared fixtures: an in-memory editor host that records what the engine asks for.
"""

import pytest

from Main.abbreviation_engine import (
    AbbreviationSession, ChangeEvent, ContentChange, EditorHost, Selection, cursor_positions,
)
from Main.translation_table import TranslationTable


class FakeHost(EditorHost):
    """
    A plain-string buffer with one or more carets.

    Edit batches are queued like a real editor would apply them on its next
    event-loop turn; flush() applies them.
    """

    def __init__(self, text="", cursors=None):
        self.text = text
        positions = cursors if cursors is not None else [len(text)]
        self.cursors = [Selection(p, p) for p in positions]
        self.pending = []
        self.applied = []
        self.decorations = []

    # EditorHost
    def selections(self):
        return list(self.cursors)

    def line_prefix(self, offset):
        start = self.text.rfind("\n", 0, offset) + 1
        return self.text[start:offset]

    def text_range(self, start, end):
        return self.text[start:end]

    def apply_edits(self, edits):
        self.pending.append((list(edits), self.selections()))

    def set_decorations(self, ranges):
        self.decorations = list(ranges)

    # Simulated user actions
    def type(self, session, text):
        """Type text at every caret as one keystroke, one character group at a time."""
        for ch in text:
            self._insert(session, ch)

    def insert(self, session, text):
        """Insert text at every caret as a single change (e.g. a paste or an auto-closed pair)."""
        self._insert(session, text)

    def _insert(self, session, text):
        order = sorted(range(len(self.cursors)), key=lambda i: self.cursors[i].position)
        changes = []
        new_positions = [0] * len(self.cursors)
        for rank, i in enumerate(order):
            pos = self.cursors[i].position + rank * len(text)
            self.text = self.text[:pos] + text + self.text[pos:]
            changes.append(ContentChange(pos, 0, text))
            new_positions[i] = pos + len(text)
        self.cursors = [Selection(p, p) for p in new_positions]
        session.on_change(ChangeEvent(changes, self.selections()))

    def backspace(self, session):
        order = sorted(range(len(self.cursors)), key=lambda i: self.cursors[i].position)
        changes = []
        new_positions = [0] * len(self.cursors)
        for rank, i in enumerate(order):
            pos = self.cursors[i].position - rank
            self.text = self.text[:pos - 1] + self.text[pos:]
            changes.append(ContentChange(pos - 1, 1, ""))
            new_positions[i] = pos - 1
        self.cursors = [Selection(p, p) for p in new_positions]
        session.on_change(ChangeEvent(changes, self.selections()))

    def move(self, session, *positions):
        self.cursors = [Selection(p, p) for p in positions]
        session.on_selection_changed(self.selections())

    def select(self, session, anchor, position):
        self.cursors = [Selection(anchor, position)]
        session.on_selection_changed(self.selections())

    def flush(self, session=None):
        """Apply queued batches, then report the resulting caret move like an editor would."""
        while self.pending:
            edits, selections = self.pending.pop(0)
            positions = cursor_positions(selections, edits)
            for edit in sorted(edits, key=lambda e: e.range.start, reverse=True):
                start, end = edit.range
                self.text = self.text[:start] + edit.text + self.text[end:]
            self.cursors = [Selection(p, p) for p in positions]
            self.applied.append(edits)
            if session is not None:
                session.on_selection_changed(self.selections())


@pytest.fixture
def table():
    return TranslationTable.build({
        "alpha": "α",
        "a": "α",
        "beta": "β",
        "to": "→",
        "ab": "X",
        "abc": "Y",
        "f": "φ",
        "N": "ℕ",
    })


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def session(host, table):
    return AbbreviationSession(host, table)


@pytest.fixture
def make_host():
    """FakeHost factory for tests that need a pre-filled buffer or several carets."""
    return FakeHost
