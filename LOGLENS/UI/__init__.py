"""
LOGLENS Terminal UI
"""
from .app import LogLensApp, run_app

__all__ = [
    'LogLensApp',
    'run_app',
]
