"""
Shared helpers for spreadsheet cells and Portuguese text.
"""
