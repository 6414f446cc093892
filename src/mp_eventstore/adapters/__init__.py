"""Adapters – persistence backends."""
