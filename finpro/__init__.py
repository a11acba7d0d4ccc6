"""
FinPro - Source Package

Personal finance tracking core: transactions, subscriptions, loans,
savings goals and monthly budgets for a single user, plus everything
derived from them.

DESIGN PRINCIPLES:
1. Derived values are computed, never stored
2. Fail early, fail visibly
3. Malformed records are skipped, not allowed to break a dashboard
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinPro Team"
