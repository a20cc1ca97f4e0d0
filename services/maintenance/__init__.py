"""Booking link maintenance: validation, repair, apply."""
