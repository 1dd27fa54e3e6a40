"""Shared infrastructure: configuration and timezone name handling."""
