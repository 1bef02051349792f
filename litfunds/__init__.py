"""
LitFunds - Source Package

A personal finance tracker: record income and expenses, then see
where the money went.

DESIGN PRINCIPLES:
1. One aggregation module feeds every page
2. Fail early, fail visibly
3. No silent corrections to user input
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "LitFunds Team"
