"""Shared helpers for the sync pipeline (name matching, date parsing)."""
