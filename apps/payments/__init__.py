"""Card payments for bookings."""
