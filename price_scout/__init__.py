"""Concurrent price search across key resellers."""
