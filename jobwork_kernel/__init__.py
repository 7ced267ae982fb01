"""
Job-Work Kernel

Ledger core for pieces sent to external processors (forging, plating,
buffing, blasting, heat treatment, job work):
- Append-only receipts with quantity conservation
- Status derived from receipt history, never set directly
- Per-move serialized receipt writes
- Structured, typed errors and JSON logging
"""

__version__ = "0.1.0"
