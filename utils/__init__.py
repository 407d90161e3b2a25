"""Helpers for the lending desk CLI: input validation and output rendering."""
