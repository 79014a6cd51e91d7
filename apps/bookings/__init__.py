"""Bookings app package.

The booking ledger: availability index, validation, pricing and the
reservation coordinator, with the ORM models, API, refund
reconciliation jobs and message bus handlers around them.
"""
