import os
import sys
import logging

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeySequence, QShortcut, QAction
from PySide6.QtWidgets import QApplication, QMainWindow, QFileDialog, QLabel, QMessageBox

from Details.code_editor import CodeEditor
from Details.abbreviation_input import AbbreviationInputController
from Main.input_manager import AbbreviationInputManager
from Main.input_settings import DocumentInfo, load_input_settings, save_input_settings

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Single-document editor with unicode abbreviation input (type \\alpha + space for α)."""

    def __init__(self, path=None):
        super().__init__()
        self.setWindowTitle("Unicode Input")
        self.resize(900, 600)
        self.current_file_path = None

        self.settings_dir = os.path.join(os.environ.get('LOCALAPPDATA') or os.environ.get('APPDATA') or os.path.expanduser("~"), "UnicodeInput")
        try:
            os.makedirs(self.settings_dir, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create settings directory %s: %s", self.settings_dir, e)
        self.settings_file = os.path.join(self.settings_dir, "settings.json")

        self.input_manager = AbbreviationInputManager(
            load_input_settings(self.settings_file),
            on_state_changed=self.on_input_state_changed,
        )
        self.editor = CodeEditor(self)
        self.setCentralWidget(self.editor)
        self.input_controller = AbbreviationInputController(self.editor, self.input_manager)

        self.input_status = QLabel()
        self.statusBar().addPermanentWidget(self.input_status)
        self.setup_menus()
        self.update_input_status()

        if path:
            self.open_file_for_editing(path)

    def setup_menus(self):
        file_menu = self.menuBar().addMenu("&File")
        open_action = QAction("Open...", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(self.open_file)
        file_menu.addAction(open_action)
        save_action = QAction("Save", self)
        save_action.setShortcut(QKeySequence.Save)
        save_action.triggered.connect(self.save_file)
        file_menu.addAction(save_action)
        save_as_action = QAction("Save As...", self)
        save_as_action.setShortcut(QKeySequence.SaveAs)
        save_as_action.triggered.connect(self.save_file_as)
        file_menu.addAction(save_as_action)

        edit_menu = self.menuBar().addMenu("&Edit")
        convert_action = QAction("Convert Abbreviation", self)
        convert_action.triggered.connect(self.input_controller.convert)
        edit_menu.addAction(convert_action)
        # Ctrl+Space is commonly taken by input method switching, so use the Shift variant
        self.convert_shortcut = QShortcut(QKeySequence("Ctrl+Shift+Space"), self.editor)
        self.convert_shortcut.setContext(Qt.WidgetShortcut)
        self.convert_shortcut.activated.connect(self.input_controller.convert)

        settings_menu = self.menuBar().addMenu("&Settings")
        self.toggle_input_action = QAction("Abbreviation Input", self)
        self.toggle_input_action.setCheckable(True)
        self.toggle_input_action.setChecked(self.input_manager.enabled)
        self.toggle_input_action.toggled.connect(self.set_input_enabled)
        settings_menu.addAction(self.toggle_input_action)
        reload_action = QAction("Reload Input Settings", self)
        reload_action.triggered.connect(self.reload_input_settings)
        settings_menu.addAction(reload_action)

    # ---------------------- Files ----------------------
    def open_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open File", self.current_file_path or "")
        if path:
            self.open_file_for_editing(path)

    def open_file_for_editing(self, path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            QMessageBox.warning(self, "Open File", f"Could not open {path}:\n{e}")
            return
        self.current_file_path = path
        self.editor.path = path
        self.editor.setPlainText(content)
        self.input_controller.attach(DocumentInfo.for_path(path))
        self.setWindowTitle(f"{os.path.basename(path)} - Unicode Input")
        self.update_input_status()

    def save_file(self):
        if not self.current_file_path:
            return self.save_file_as()
        try:
            with open(self.current_file_path, 'w', encoding='utf-8') as f:
                f.write(self.editor.toPlainText())
        except OSError as e:
            QMessageBox.warning(self, "Save File", f"Could not save {self.current_file_path}:\n{e}")
            return
        self.editor.document().setModified(False)
        self.statusBar().showMessage("Saved.", 2000)

    def save_file_as(self):
        path, _ = QFileDialog.getSaveFileName(self, "Save File As", self.current_file_path or "")
        if not path:
            return
        self.current_file_path = path
        self.editor.path = path
        self.input_controller.attach(DocumentInfo.for_path(path))
        self.save_file()
        self.update_input_status()

    # ---------------------- Input settings ----------------------
    def reload_input_settings(self):
        self.input_manager.apply_settings(load_input_settings(self.settings_file))
        self.input_controller.attach()
        self.toggle_input_action.setChecked(self.input_manager.enabled)
        self.update_input_status()
        self.statusBar().showMessage("Input settings reloaded.", 2000)

    def set_input_enabled(self, enabled):
        settings = self.input_manager.settings
        if settings.enabled == enabled:
            return
        settings.enabled = enabled
        self.input_manager.apply_settings(settings)
        self.input_controller.attach()
        save_input_settings(self.settings_file, settings)
        self.update_input_status()

    def on_input_state_changed(self, editor, active):
        self.update_input_status()

    def update_input_status(self):
        if not self.input_manager.is_supported(self.input_controller.document):
            self.input_status.setText("Input: off")
        elif self.input_controller.active:
            self.input_status.setText(f"Input: {self.input_manager.leader}…")
        else:
            self.input_status.setText(f"Input: {self.input_manager.leader}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    app = QApplication(sys.argv)
    path = next((a for a in sys.argv[1:] if os.path.isfile(a)), None)
    window = MainWindow(path)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
