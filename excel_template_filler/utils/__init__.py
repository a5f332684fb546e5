"""Utility helpers for Excel Template Filler."""
