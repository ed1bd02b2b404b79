"""Data kind classifiers."""

from .record_classifier import RecordClassifier, classify_records

__all__ = [
    'RecordClassifier',
    'classify_records',
]
