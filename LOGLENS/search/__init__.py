"""
Search Package - Store-wide search with match navigation
"""
from .search_engine import SearchEngine, SearchError, SearchState

__all__ = [
    'SearchEngine',
    'SearchError',
    'SearchState',
]
