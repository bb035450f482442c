"""
MR-ROBOT Computer Repair - data layer

Dual-store Postgres access for the website backend.

CORE CONTRACTS:
- Every statement is mirrored to store A (AWS) and store B (Azure)
- Store B's result wins whenever it succeeded
- Partial failure is logged, never raised
- Only an aggregate failure (no usable store) reaches route handlers
"""

__version__ = "1.2.0"
