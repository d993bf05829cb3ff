"""
Input manager: owns the translation table and one abbreviation session per editor.

Editors are identified by any hashable key (the Qt front end uses the editor
widget itself). The manager gates every event through the enabled flag and
the language filter before handing it to the editor's session.
"""

import logging

from Main.abbreviation_engine import AbbreviationSession, find_replacement
from Main.input_settings import InputSettings, matches_language_filter
from Main.symbol_lookup import SymbolLookup
from Main.translation_table import TranslationTable, load_base_translations

logger = logging.getLogger(__name__)


class AbbreviationInputManager:
    """Manages the abbreviation sessions of every open editor."""

    def __init__(self, settings=None, base_translations=None, on_state_changed=None):
        """
        Args:
            settings: InputSettings; defaults when omitted
            base_translations: mapping used as the base table; the bundled table when omitted
            on_state_changed: called as (key, active) when an editor's session flips state
        """
        self.base_translations = dict(base_translations) if base_translations is not None else load_base_translations()
        self.on_state_changed = on_state_changed
        self.settings = settings or InputSettings()
        self.table = self._build_table(self.settings)
        self.lookup = SymbolLookup(self.table, self.settings.leader)
        self._sessions = {}
        self._documents = {}

    def _build_table(self, settings):
        table = TranslationTable.build(self.base_translations, settings.custom_translations)
        logger.info("Built translation table with %d entries (%d custom)",
                    len(table), len(settings.custom_translations))
        return table

    # ---------------------- Configuration ----------------------
    @property
    def leader(self):
        return self.settings.leader

    @property
    def enabled(self):
        return self.settings.enabled

    def apply_settings(self, settings):
        """Swap in new settings. Pending spans are dropped, never reinterpreted."""
        self.settings = settings
        self.table = self._build_table(settings)
        self.lookup = SymbolLookup(self.table, settings.leader)
        for key in list(self._sessions):
            document = self._documents.get(key)
            if not settings.enabled or document is None or not matches_language_filter(settings, document):
                self.detach(key)
            else:
                self._sessions[key].reset(self.table, settings.leader)

    def is_supported(self, document):
        return self.settings.enabled and matches_language_filter(self.settings, document)

    # ---------------------- Sessions ----------------------
    def attach(self, key, host, document):
        """Create (or re-target) the session for an editor; None when the document is not handled."""
        self._documents[key] = document
        if not self.is_supported(document):
            self.detach(key)
            return None
        session = self._sessions.get(key)
        if session is None or session.host is not host:
            session = AbbreviationSession(host, self.table, self.settings.leader,
                                          on_state_changed=lambda active, key=key: self._state_changed(key, active))
            self._sessions[key] = session
        return session

    def detach(self, key):
        session = self._sessions.pop(key, None)
        if session is not None:
            session.deactivate()

    def forget(self, key):
        """Drop everything known about an editor (it was closed)."""
        self.detach(key)
        self._documents.pop(key, None)

    def session_for(self, key):
        return self._sessions.get(key)

    def is_active(self, key):
        session = self._sessions.get(key)
        return bool(session and session.active)

    def _state_changed(self, key, active):
        if self.on_state_changed:
            self.on_state_changed(key, active)

    # ---------------------- Events ----------------------
    def on_change(self, key, event):
        session = self._sessions.get(key)
        if session is None or not self.settings.enabled:
            return
        session.on_change(event)

    def on_selection_changed(self, key, selections):
        session = self._sessions.get(key)
        if session is None or not self.settings.enabled:
            return
        session.on_selection_changed(selections)

    def convert(self, key):
        """The explicit 'convert now' command for one editor."""
        session = self._sessions.get(key)
        if session is None:
            return []
        return session.convert()

    # ---------------------- Queries ----------------------
    def find_replacement(self, abbrev):
        return find_replacement(self.table, abbrev)

    def abbreviations_for(self, symbol):
        return self.lookup.abbreviations_for(symbol)

    def hover_message(self, symbol):
        return self.lookup.hover_message(symbol)
