"""
Unicode abbreviation input for CodeEditor.

QtEditorHost exposes a CodeEditor through the engine's EditorHost interface;
AbbreviationInputController wires the editor's signals to the input manager,
applies replacement batches on the next event-loop turn and shows the
"Type ⊓ using \\glb" hover.

Qt positions count UTF-16 code units while the engine counts Python
characters, so the host converts every offset crossing the boundary.
"""

import logging
from bisect import bisect_left
from functools import partial

from PySide6.QtCore import QObject, QEvent, QTimer
from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import QToolTip

from Main.abbreviation_engine import (
    ChangeEvent, ContentChange, EditorHost, Range, Selection, cursor_positions,
)
from Main.input_settings import DocumentInfo

logger = logging.getLogger(__name__)


class _TextIndex:
    """Converts between Qt (UTF-16) positions and Python string offsets for one text snapshot."""

    def __init__(self, text):
        self.text = text
        # Characters outside the BMP take two UTF-16 units
        self.astral = [i for i, ch in enumerate(text) if ord(ch) > 0xFFFF]

    def to_offset(self, qt_pos):
        if not self.astral:
            return min(qt_pos, len(self.text))
        offset = qt_pos
        for k, i in enumerate(self.astral):
            # Astral character i starts at Qt position i + k
            if i + k >= qt_pos:
                break
            offset -= 1
        return min(offset, len(self.text))

    def to_qt(self, offset):
        return offset + bisect_left(self.astral, offset)


class QtEditorHost(EditorHost):
    """EditorHost over a CodeEditor (QPlainTextEdit with a MultiCursorManager)."""

    def __init__(self, editor, on_applied=None):
        self.editor = editor
        self.on_applied = on_applied
        self.applying = False

    def _index(self):
        return _TextIndex(self.editor.toPlainText())

    def selections(self):
        index = self._index()
        return [Selection(index.to_offset(c.anchor()), index.to_offset(c.position()))
                for c in self.editor.multi.get_all_cursors()]

    def line_prefix(self, offset):
        text = self.editor.toPlainText()
        start = text.rfind('\n', 0, offset) + 1
        return text[start:offset]

    def text_range(self, start, end):
        return self.editor.toPlainText()[start:end]

    def set_decorations(self, ranges):
        index = self._index()
        self.editor.set_abbreviation_ranges([(index.to_qt(r.start), index.to_qt(r.end)) for r in ranges])

    def apply_edits(self, edits):
        # Fire-and-forget: keyed to the ranges as they are now, applied once control returns to Qt
        QTimer.singleShot(0, partial(self.apply_now, list(edits), self.selections()))

    def apply_now(self, edits, selections):
        """Apply one batch as a single undo step and place the carets. False when the batch was dropped."""
        index = self._index()
        if any(e.range.start < 0 or e.range.end > len(index.text) or e.range.start > e.range.end for e in edits):
            logger.warning("Dropping %d abbreviation edit(s): the document changed underneath them", len(edits))
            return False
        positions = cursor_positions(selections, edits)
        cursor = QTextCursor(self.editor.document())
        self.applying = True
        cursor.beginEditBlock()
        try:
            for edit in sorted(edits, key=lambda e: e.range.start, reverse=True):
                cursor.setPosition(index.to_qt(edit.range.start))
                cursor.setPosition(index.to_qt(edit.range.end), QTextCursor.KeepAnchor)
                cursor.insertText(edit.text)
        finally:
            cursor.endEditBlock()
            self.applying = False
        new_index = self._index()
        self.editor.multi.set_cursor_positions([new_index.to_qt(p) for p in positions])
        if self.on_applied:
            self.on_applied()
        return True


class AbbreviationInputController(QObject):
    """Connects one CodeEditor to the AbbreviationInputManager."""

    def __init__(self, editor, manager, document=None):
        super().__init__(editor)
        self.editor = editor
        self.manager = manager
        self.document = document or DocumentInfo.for_path(getattr(editor, 'path', None))
        self.host = QtEditorHost(editor, on_applied=self._after_edits)
        self._snapshot = editor.toPlainText()
        self._revision = editor.document().revision()

        editor.document().contentsChange.connect(self._on_contents_change)
        editor.cursorPositionChanged.connect(self._on_cursor_moved)
        editor.multi.textReplicated.connect(self._on_text_replicated)
        editor.viewport().installEventFilter(self)
        self.attach()

    # ---------------------- Public API ----------------------
    def attach(self, document=None):
        """(Re)attach after a file was opened or saved under a new name, or settings changed."""
        if document is not None:
            self.document = document
        self._sync()
        return self.manager.attach(self.editor, self.host, self.document)

    def detach(self):
        self.manager.forget(self.editor)

    @property
    def active(self):
        return self.manager.is_active(self.editor)

    def convert(self):
        """Convert the abbreviations under the carets right now."""
        return self.manager.convert(self.editor)

    # ---------------------- Signals ----------------------
    def _sync(self):
        self._snapshot = self.editor.toPlainText()
        self._revision = self.editor.document().revision()

    def _on_contents_change(self, position, removed, added):
        if self.host.applying or self.editor.multi.replicating:
            return
        old = self._snapshot
        new = self.editor.toPlainText()
        self._sync()
        index = _TextIndex(new)
        start = index.to_offset(position)
        # Everything after the change is untouched; Qt sometimes over-reports the changed length
        tail = len(new) - index.to_offset(position + added)
        old_seg = old[start:max(start, len(old) - tail)]
        new_seg = new[start:len(new) - tail]
        while old_seg and new_seg and old_seg[0] == new_seg[0]:
            old_seg, new_seg, start = old_seg[1:], new_seg[1:], start + 1
        while old_seg and new_seg and old_seg[-1] == new_seg[-1]:
            old_seg, new_seg = old_seg[:-1], new_seg[:-1]
        if not old_seg and not new_seg:
            # Formatting only
            return
        change = ContentChange(start, len(old_seg), new_seg)
        self.manager.on_change(self.editor, ChangeEvent([change], self.host.selections()))

    def _on_text_replicated(self, text, removed):
        self._sync()
        selections = self.host.selections()
        changes = [ContentChange(max(0, s.position - len(text)), removed, text) for s in selections]
        self.manager.on_change(self.editor, ChangeEvent(changes, selections))

    def _on_cursor_moved(self):
        if self.host.applying or self.editor.multi.replicating:
            return
        if self.editor.document().revision() != self._revision:
            # A content change is still on its way; it re-derives the spans itself
            return
        self.manager.on_selection_changed(self.editor, self.host.selections())

    def _after_edits(self):
        self._sync()
        self.manager.on_selection_changed(self.editor, self.host.selections())

    # ---------------------- Hover ----------------------
    def eventFilter(self, obj, event):
        if obj is self.editor.viewport() and event.type() == QEvent.ToolTip:
            message = self.hover_message_at(self.editor.cursorForPosition(event.pos()).position())
            if message:
                QToolTip.showText(event.globalPos(), message, self.editor.viewport())
            else:
                QToolTip.hideText()
                event.ignore()
            return True
        return False

    def hover_message_at(self, qt_pos):
        if not self.manager.is_supported(self.document):
            return None
        index = _TextIndex(self.editor.toPlainText())
        offset = index.to_offset(qt_pos)
        return self.manager.hover_message(index.text[offset:offset + 1])
