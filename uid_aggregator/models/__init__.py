"""Data models for the UID Aggregator."""

from .uid_source import UIDSource
from .aggregated_user import AggregatedUserData, ProfileData, Row
from .uploaded_file import UploadedFile

__all__ = [
    'UIDSource',
    'AggregatedUserData',
    'ProfileData',
    'Row',
    'UploadedFile',
]
