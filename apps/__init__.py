"""Django apps of the rental booking ledger."""
