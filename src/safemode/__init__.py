"""
Safemode: content blocklisting for content-addressed gateways.

Answers "is this CID blocked?" and keeps an append-only audit trail of
every block and unblock action.
"""

__version__ = "0.1.0"
