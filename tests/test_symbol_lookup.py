"""
Tests for the reverse lookup behind the hover message.
"""

from Main.symbol_lookup import SymbolLookup
from Main.translation_table import TranslationTable, load_base_translations


def test_abbreviations_for_symbol(table):
    lookup = SymbolLookup(table)
    assert lookup.abbreviations_for("α") == ["a", "alpha"]
    assert lookup.abbreviations_for("→") == ["to"]
    assert lookup.abbreviations_for("z") == []


def test_empty_symbol_has_no_abbreviations(table):
    assert SymbolLookup(table).abbreviations_for("") == []


def test_overridden_abbreviation_only_has_custom_meaning():
    table = TranslationTable.build({"a": "α", "alpha": "α"}, {"a": "A"})
    lookup = SymbolLookup(table)
    assert lookup.abbreviations_for("α") == ["alpha"]
    assert lookup.abbreviations_for("A") == ["a"]


def test_hover_message_lists_every_abbreviation():
    lookup = SymbolLookup(TranslationTable.build(load_base_translations()))
    assert lookup.hover_message("⊓") == "Type ⊓ using \\glb or \\inf or \\sqcap"


def test_hover_message_single(table):
    assert SymbolLookup(table).hover_message("ℕ") == "Type ℕ using \\N"


def test_hover_message_custom_leader(table):
    assert SymbolLookup(table, ";").hover_message("β") == "Type β using ;beta"


def test_no_hover_for_plain_text(table):
    assert SymbolLookup(table).hover_message("q") is None
    assert SymbolLookup(table).hover_message("") is None
