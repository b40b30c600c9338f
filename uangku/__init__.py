"""
UangKu Ledger - Source Package

Records income and expense transactions for a user, keeps an
undo/redo history of every change, and fans changes out to
balance and budget watchers.

DESIGN PRINCIPLES:
1. Local storage is the source of truth
2. Every mutation goes through the command history
3. Every operation returns a result, never a surprise exception
4. Observers see every state change exactly once
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "UangKu Team"
