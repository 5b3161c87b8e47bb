"""
FinanceFlow - Source Package

A personal finance tracker: transactions, capital divisions and
free-form spreadsheets, kept on the device and mirrored to a per-user
remote store when the user is signed in.

DESIGN PRINCIPLES:
1. Local first: every change is saved on the device before anything else
2. The network never blocks the user; failures degrade, they don't raise
3. Derived numbers are pure functions of the collections
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinanceFlow Team"
