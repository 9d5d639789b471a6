"""Inventory services — spreadsheet import and export."""
