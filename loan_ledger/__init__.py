"""
Loan Ledger

Tracks loans issued to customers, records payments against them and derives
balances, remaining installments and interest on demand. All financial math
uses Decimal.
"""

__version__ = "1.0.0"
