"""Shared helpers: configuration, durations, timestamps and data structures."""
