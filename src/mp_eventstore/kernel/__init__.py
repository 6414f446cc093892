"""Kernel – errors, identifiers, clock and DDD building blocks."""
