"""Rule-based analysis over aggregated profiles."""

from .connection_finder import Connection, ConnectionFinder, ConnectionReport, find_connections
from .interest_categorizer import InterestCategorizer, InterestProfile, categorize_interests
from .analysis_composer import AnalysisComposer, generate_analysis
from .statistics import DatasetStatistics, get_statistics, top_users, search_profiles

__all__ = [
    'Connection',
    'ConnectionFinder',
    'ConnectionReport',
    'find_connections',
    'InterestCategorizer',
    'InterestProfile',
    'categorize_interests',
    'AnalysisComposer',
    'generate_analysis',
    'DatasetStatistics',
    'get_statistics',
    'top_users',
    'search_profiles',
]
