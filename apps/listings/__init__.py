"""Listings app.

Homes offered by hosts, each carrying its nightly price and the
availability index of booked days. The index is only ever written by
the reservation flow in the bookings app.
"""
