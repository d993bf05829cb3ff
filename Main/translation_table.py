"""
Translation table for the unicode abbreviation input.

The table is a flat mapping from abbreviation (without the leader) to symbol.
It is built once per settings load from the bundled base table and the user's
custom translations; custom entries shadow base entries with the same key.
A table is never modified after it is built - a settings change builds a new one.
"""

import os
import json
import logging
from bisect import bisect_left

logger = logging.getLogger(__name__)

BASE_TRANSLATIONS_FILE = os.path.join(os.path.dirname(__file__), "translations.json")


def _clean_entries(entries, source):
    """Keep only non-empty string keys mapped to non-empty string values."""
    if not entries:
        return {}
    if not isinstance(entries, dict):
        logger.warning("Ignoring %s translations: expected a mapping, got %s", source, type(entries).__name__)
        return {}
    cleaned = {}
    for abbrev, symbol in entries.items():
        if not isinstance(abbrev, str) or not abbrev or not isinstance(symbol, str) or not symbol:
            logger.warning("Ignoring %s translation %r -> %r", source, abbrev, symbol)
            continue
        cleaned[abbrev] = symbol
    return cleaned


def load_base_translations(path=None):
    """Load the bundled base table. A missing or broken file gives an empty table."""
    path = path or BASE_TRANSLATIONS_FILE
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.error("Could not load base translations from %s: %s", path, e)
        return {}
    return _clean_entries(data, "base")


class TranslationTable:
    """Immutable, flattened abbreviation -> symbol mapping."""

    def __init__(self, entries=None):
        self._entries = dict(entries or {})
        # Sorted keys make every prefix search a contiguous slice
        self._sorted_keys = sorted(self._entries)
        self._by_symbol = None

    @classmethod
    def build(cls, base=None, overrides=None):
        """
        Merge the base table with the override table.

        Args:
            base: mapping of built-in abbreviations
            overrides: user supplied mapping; wins on key collisions

        Absent, empty or malformed inputs simply contribute nothing.
        """
        merged = _clean_entries(base, "base")
        merged.update(_clean_entries(overrides, "custom"))
        return cls(merged)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, abbrev):
        return abbrev in self._entries

    def lookup(self, abbrev):
        return self._entries.get(abbrev)

    def all_entries(self):
        return list(self._entries.items())

    def keys_with_prefix(self, prefix):
        """All abbreviations starting with prefix, in lexicographic order."""
        keys = self._sorted_keys
        i = bisect_left(keys, prefix)
        found = []
        while i < len(keys) and keys[i].startswith(prefix):
            found.append(keys[i])
            i += 1
        return found

    def shortest_extension(self, prefix):
        """
        Shortest abbreviation that starts with prefix (prefix itself included).
        Abbreviations of the same length are ordered lexicographically.
        """
        candidates = self.keys_with_prefix(prefix)
        if not candidates:
            return None
        return min(candidates, key=lambda k: (len(k), k))

    def abbreviations_for(self, symbol):
        """Abbreviations producing exactly symbol, shortest first."""
        if self._by_symbol is None:
            by_symbol = {}
            for abbrev, sym in self._entries.items():
                by_symbol.setdefault(sym, []).append(abbrev)
            for abbrevs in by_symbol.values():
                abbrevs.sort(key=lambda k: (len(k), k))
            self._by_symbol = by_symbol
        return list(self._by_symbol.get(symbol, ()))
