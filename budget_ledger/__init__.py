"""
Budget Ledger - Source Package

A personal budgeting ledger: monthly income, categorized expenses,
per-category spending limits, recurring items and spending insights.

DESIGN PRINCIPLES:
1. The in-memory ledger is the source of truth
2. Bad form input is rejected, never raised
3. Recurring items are copied into a month at most once
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Ledger Team"
