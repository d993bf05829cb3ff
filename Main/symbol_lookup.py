"""
Reverse lookup for the hover: which abbreviations type a given symbol.
"""

from Main.abbreviation_engine import DEFAULT_LEADER


class SymbolLookup:
    """Read-only queries over a TranslationTable."""

    def __init__(self, table, leader=DEFAULT_LEADER):
        self.table = table
        self.leader = leader

    def abbreviations_for(self, symbol):
        """
        Abbreviations producing exactly symbol, shortest first (ties lexicographic).
        The table is already flattened, so an overridden abbreviation only
        shows up with its custom meaning.
        """
        if not symbol:
            return []
        return self.table.abbreviations_for(symbol)

    def hover_message(self, symbol):
        """E.g. 'Type ⊓ using \\glb or \\inf'; None when nothing types symbol."""
        abbrevs = self.abbreviations_for(symbol)
        if not abbrevs:
            return None
        return f"Type {symbol} using {' or '.join(self.leader + a for a in abbrevs)}"
