"""loanledger - track book loans to registered borrowers.

A book copy can have at most one open loan at any instant. The rule is
enforced by the database itself so it holds across concurrent requests and
multiple processes.
"""

__version__ = "0.1.0"
