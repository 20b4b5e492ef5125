"""
Personal Finance Tracker - Source Package

Records one-off income/expense entries and monthly recurring rules,
materializes the rules into dated transactions, and derives monthly,
annual and financial-health views from the ledger.

DESIGN PRINCIPLES:
1. The engine is pure: values in, new values out
2. Recurring generation never duplicates a past month
3. Legacy records are repaired, user input is validated
4. Every ledger mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Tracker Team"
