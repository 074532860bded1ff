"""
Core wiring for the storage layer.

The `StoreManager` builds every storage component from one configuration and one
substrate, and runs the opportunistic maintenance pass views trigger on load.
"""

from .store_manager import StoreManager

__all__ = ["StoreManager"]
