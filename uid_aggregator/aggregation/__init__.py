"""UID aggregation over uploaded files."""

from .aggregator import Aggregator, aggregate_files, aggregate_files_async

__all__ = [
    'Aggregator',
    'aggregate_files',
    'aggregate_files_async',
]
