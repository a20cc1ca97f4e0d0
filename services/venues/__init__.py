"""Venue catalog: discovery, import, export, dedup."""
