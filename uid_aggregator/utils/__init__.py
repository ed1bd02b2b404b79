"""Shared constants and helpers."""
