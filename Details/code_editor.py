from PySide6.QtCore import Qt
from PySide6.QtGui import QPainter, QTextCursor, QTextFormat, QTextCharFormat, QColor, QFont
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit
from Details.multi_cursor import MultiCursorManager


class CodeEditor(QPlainTextEdit):
    """
    A QPlainTextEdit with current line highlighting, multiple carets and
    underlined abbreviation spans.
    """
    def __init__(self, parent=None, path=None):
        super().__init__(parent)
        self.path = path
        self.abbreviation_selections = []
        self.setLineWrapMode(QPlainTextEdit.NoWrap)
        self.setUndoRedoEnabled(True)
        # Leave room for the glyphs the abbreviation input produces
        font = QFont("DejaVu Sans Mono")
        font.setStyleHint(QFont.Monospace)
        font.setPointSize(12)
        self.setFont(font)
        self.setTabStopDistance(self.fontMetrics().horizontalAdvance(' ') * 4)

        self.multi = MultiCursorManager(self)
        self.cursorPositionChanged.connect(self.highlightCurrentLine)
        self.highlightCurrentLine()

    def set_abbreviation_ranges(self, ranges):
        """Underline the given (start, end) ranges; replaces the previous set."""
        selections = []
        doc_end = self.document().characterCount() - 1
        for start, end in ranges:
            start = max(0, min(start, doc_end))
            end = max(start, min(end, doc_end))
            selection = QTextEdit.ExtraSelection()
            selection.format.setFontUnderline(True)
            selection.format.setUnderlineStyle(QTextCharFormat.SingleUnderline)
            cursor = QTextCursor(self.document())
            cursor.setPosition(start)
            cursor.setPosition(end, QTextCursor.KeepAnchor)
            selection.cursor = cursor
            selections.append(selection)
        self.abbreviation_selections = selections
        self.highlightCurrentLine()

    def highlightCurrentLine(self):
        """
        Highlights the current line and re-applies every other extra selection on top.
        """
        extraSelections = []
        if not self.isReadOnly():
            selection = QTextEdit.ExtraSelection()
            lineColor = QColor("#282A2E") # Background color for the current line
            selection.format.setBackground(lineColor)
            selection.format.setProperty(QTextFormat.FullWidthSelection, True)
            selection.cursor = self.textCursor()
            selection.cursor.clearSelection()
            extraSelections.append(selection)

        extraSelections.extend(self.abbreviation_selections)
        if hasattr(self, 'multi') and self.multi:
            extraSelections.extend(self.multi.get_extra_selections())
        self.setExtraSelections(extraSelections)
        self.viewport().update()

    def keyPressEvent(self, e):
        if self.multi.handle_key_press(e):
            return
        super().keyPressEvent(e)

    def mousePressEvent(self, e):
        if self.multi.handle_mouse_press(e):
            return # The event was handled by the multi-cursor manager
        super().mousePressEvent(e)

    def paintEvent(self, event):
        # Paint text and selections FIRST
        super().paintEvent(event)
        painter = QPainter(self.viewport())
        self.multi.paint_additional_carets(painter)
        painter.end()
