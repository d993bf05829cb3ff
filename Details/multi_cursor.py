from PySide6.QtCore import Qt, QTimer, QObject, Signal
from PySide6.QtGui import QTextCursor, QColor, QPainter, QPalette
from PySide6.QtWidgets import QApplication, QTextEdit


class MultiCursorManager(QObject):
    """
    VS Code-like multi-caret editing for a QPlainTextEdit-based editor.
    Features:
    - Alt+Click to toggle additional carets
    - Ctrl+Alt+Up/Down to add a caret above/below at the same column
    - Escape clears the additional carets
    - Replicates text insertions/backspace/delete/Enter across all active carets

    Qt reports a replicated edit as one aggregated contentsChange covering every
    caret, so the manager announces the keystroke itself through textReplicated
    (inserted text, characters removed per caret).
    """
    textReplicated = Signal(str, int)

    def __init__(self, editor):
        super().__init__(editor)
        self.editor = editor
        # Secondary carets as list of QTextCursor (primary caret is editor.textCursor())
        self.extra_carets = []
        # True while an edit is being replicated; raw document signals are not user keystrokes then
        self.replicating = False
        self._blink_visible = True
        self._blink_timer = QTimer(editor)
        self._blink_timer.timeout.connect(self._toggle_blink)
        ft = QApplication.cursorFlashTime()
        interval = max(200, int(ft / 2)) if ft and ft > 0 else 500
        self._blink_timer.start(interval)

    # ---------------------- Public API ----------------------
    def clear(self):
        self.extra_carets = []
        # Restore the primary cursor when clearing multi-cursors
        self.editor.setCursorWidth(2)
        self.editor.highlightCurrentLine()

    def has_multi(self):
        return len(self.extra_carets) > 0

    def get_all_cursors(self):
        cursors = [self.editor.textCursor()]
        cursors.extend(QTextCursor(c) for c in self.extra_carets)
        # Deduplicate by range/position, preserving order
        unique = []
        seen = set()
        for c in cursors:
            key = (c.selectionStart(), c.selectionEnd())
            if key in seen:
                continue
            seen.add(key)
            unique.append(c)
        return unique

    def set_cursor_positions(self, positions):
        """Collapse every caret onto the given offsets; the first one becomes the primary caret."""
        if not positions:
            return
        doc_end = self.editor.document().characterCount() - 1
        cursors = []
        for pos in positions:
            c = QTextCursor(self.editor.document())
            c.setPosition(max(0, min(pos, doc_end)))
            cursors.append(c)
        self.editor.setTextCursor(cursors[0])
        self.extra_carets = []
        for c in cursors[1:]:
            self._append_or_merge(c)
        self.editor.highlightCurrentLine()

    def add_caret_at(self, pos):
        c = QTextCursor(self.editor.document())
        c.setPosition(pos)
        self._append_or_merge(c)
        self._reset_blink()
        self.editor.highlightCurrentLine()

    def add_caret_above(self):
        self._add_caret_vertical(above=True)

    def add_caret_below(self):
        self._add_caret_vertical(above=False)

    def _add_caret_vertical(self, above):
        # Use the primary caret's column as the persistent target to preserve alignment across empty lines
        base = self.editor.textCursor()
        base_col = base.position() - base.block().position()
        new_carets = []
        for cur in self.get_all_cursors():
            block = cur.block()
            target = block.previous() if above else block.next()
            if not target.isValid():
                continue
            nc = QTextCursor(target)
            nc.setPosition(target.position() + min(base_col, len(target.text())))
            new_carets.append(nc)
        for nc in new_carets:
            self._append_or_merge(nc)
        if new_carets:
            self._reset_blink()
        self.editor.highlightCurrentLine()

    def get_extra_selections(self):
        """Return QTextEdit.ExtraSelection list representing extra selections for painting."""
        sels = []
        bg_sel = QColor(self.editor.palette().color(QPalette.Highlight))
        bg_sel.setAlphaF(0.8)
        for c in self.extra_carets:
            if not c.hasSelection():
                # Plain carets are drawn as a blinking line in paint_additional_carets
                continue
            sel = QTextEdit.ExtraSelection()
            sel.cursor = c
            sel.format.setBackground(bg_sel)
            sels.append(sel)
        return sels

    def paint_additional_carets(self, painter: QPainter):
        if not self._blink_visible or not self.has_multi():
            return
        painter.save()
        color = self.editor.palette().color(QPalette.Text)
        width = max(1, self.editor.cursorWidth() or 2)
        # The primary caret is hidden while extra carets exist so that all carets blink together
        for c in [self.editor.textCursor()] + self.extra_carets:
            if c.hasSelection():
                continue
            r = self.editor.cursorRect(c)
            painter.fillRect(r.left(), r.top(), width, r.height(), color)
        painter.restore()

    # ---------------------- Event handlers ----------------------
    def handle_mouse_press(self, e):
        if e.button() != Qt.LeftButton:
            return False
        if not (e.modifiers() & Qt.AltModifier):
            # A regular click drops the extra carets and lets Qt move the primary one
            if self.has_multi():
                self.clear()
            return False
        tc = self.editor.cursorForPosition(e.position().toPoint())
        self._toggle_caret_at_position(tc.position())
        self.editor.highlightCurrentLine()
        return True

    def handle_key_press(self, e):
        mods = e.modifiers()
        if (mods & Qt.ControlModifier) and (mods & Qt.AltModifier) and e.key() == Qt.Key_Up:
            self.add_caret_above()
            return True
        if (mods & Qt.ControlModifier) and (mods & Qt.AltModifier) and e.key() == Qt.Key_Down:
            self.add_caret_below()
            return True
        if not self.has_multi():
            return False
        if e.key() == Qt.Key_Escape:
            self.clear()
            return True
        if e.key() in (Qt.Key_Return, Qt.Key_Enter):
            self._apply_enter_all()
            return True
        if e.key() == Qt.Key_Tab:
            self.apply_text_all('    ')
            return True
        if e.key() == Qt.Key_Backspace:
            self._apply_backspace_all()
            return True
        if e.key() == Qt.Key_Delete:
            self._apply_delete_all()
            return True
        # Printable text
        if e.text() and e.text().isprintable() and not (mods & (Qt.ControlModifier | Qt.AltModifier)):
            self.apply_text_all(e.text())
            return True
        return False

    # ---------------------- Edits ----------------------
    def apply_text_all(self, text: str):
        self._replicate(lambda c: c.insertText(text), text, 0)

    def _apply_backspace_all(self):
        def backspace(c):
            if c.hasSelection():
                c.removeSelectedText()
            elif c.position() > c.block().position():
                c.setPosition(c.position() - 1, QTextCursor.KeepAnchor)
                c.removeSelectedText()
        self._replicate(backspace, '', 1)

    def _apply_delete_all(self):
        def delete(c):
            if c.hasSelection():
                c.removeSelectedText()
            elif c.position() < c.block().position() + c.block().length() - 1:
                c.setPosition(c.position() + 1, QTextCursor.KeepAnchor)
                c.removeSelectedText()
        self._replicate(delete, '', 1)

    def _apply_enter_all(self):
        # Each caret keeps the indentation of its own line; the announced text uses the primary's
        primary_line = self.editor.textCursor().block().text()
        primary_indent = primary_line[:len(primary_line) - len(primary_line.lstrip(' \t'))]

        def enter(c):
            line = c.block().text()
            c.insertText('\n' + line[:len(line) - len(line.lstrip(' \t'))])
        self._replicate(enter, '\n' + primary_indent, 0)

    def _replicate(self, action, text, removed):
        """Run action at every caret, bottom-up, as one undo step, then announce the keystroke."""
        cursors = self.get_all_cursors()
        # Sort by position descending to avoid shifting ranges during edits; index 0 is the primary
        ordered = sorted(enumerate(cursors), key=lambda ic: ic[1].selectionStart(), reverse=True)
        mc = QTextCursor(self.editor.textCursor())
        self.replicating = True
        mc.beginEditBlock()
        try:
            for _, c in ordered:
                action(c)
        finally:
            mc.endEditBlock()
            self.replicating = False
        # The cursor copies moved with the document; write them back in their original order
        self.editor.setTextCursor(cursors[0])
        self.extra_carets = []
        for c in cursors[1:]:
            self._append_or_merge(c)
        self.editor.highlightCurrentLine()
        self.textReplicated.emit(text, removed)

    # ---------------------- Internal helpers ----------------------
    def _toggle_caret_at_position(self, pos):
        for i, c in enumerate(self.extra_carets):
            if c.position() == pos:
                del self.extra_carets[i]
                if not self.has_multi():
                    self.editor.setCursorWidth(2)
                return
        self.add_caret_at(pos)

    def _append_or_merge(self, cursor: QTextCursor):
        # Avoid duplicates of the primary caret or of another extra caret
        rng = (cursor.selectionStart(), cursor.selectionEnd())
        primary = self.editor.textCursor()
        if rng == (primary.selectionStart(), primary.selectionEnd()):
            return
        for c in self.extra_carets:
            if (c.selectionStart(), c.selectionEnd()) == rng:
                return
        self.extra_carets.append(cursor)

    def _toggle_blink(self):
        self._blink_visible = not self._blink_visible
        self.editor.viewport().update()

    def _reset_blink(self):
        """Restart the blink so that all carets blink in sync after a change."""
        self._blink_visible = True
        self._blink_timer.stop()
        self._blink_timer.start()
        # Hide the Qt-managed primary cursor; paint_additional_carets draws it in sync
        if self.has_multi():
            self.editor.setCursorWidth(0)
        self.editor.viewport().update()
