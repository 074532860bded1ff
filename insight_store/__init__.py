"""
Local persistence layer for the video analytics dashboard: expiring caches, a query
popularity tracker and the artifact vault.
"""

__version__ = "0.1.0"
