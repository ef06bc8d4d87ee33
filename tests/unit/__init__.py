"""Isolated tests for the portal's building blocks."""
