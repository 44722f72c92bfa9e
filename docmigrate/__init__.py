"""
Parse to Firestore migration engine

Batch migration of legacy Parse Server records into Cloud Firestore for the
client, professional and appointment management dashboard.

Supports:
- Users, client profiles, professional profiles and appointments
- Declarative field mapping tables per entity kind
- Idempotent batched upserts with skip-existing and dry-run modes
- Per-record error isolation and batch-level failure accounting
- Cancellation, reconciliation and JSON migration reports
"""

__version__ = "0.1.0"
