"""
UID Aggregator

Classifies uploaded social-platform spreadsheet exports, folds them into
per-UID profiles, and runs rule-based analysis over the profiles.
"""

__version__ = "1.0.0"
