"""Drill rounds and sessions."""
