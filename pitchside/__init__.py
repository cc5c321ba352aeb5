"""Pitchside — ticket resale sales analytics."""
