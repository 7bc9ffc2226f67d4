"""
SpendWise

Deterministic behavioral signals, persona scoring and auditable
recommendations derived from account and transaction history.
"""

__version__ = "0.1.0"
