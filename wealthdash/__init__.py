"""
WealthDash - Source Package

A single-user, multi-currency wealth dashboard that tracks bank,
investment and wallet balances, imports statements with an AI
extraction oracle, and computes net worth in any display currency.

DESIGN PRINCIPLES:
1. AI extracts → Human previews → Ledger merges
2. Never crash the dashboard (fail-safe conversions, defaulted enums)
3. All-or-nothing per import attempt
4. Every import step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "WealthDash Team"
