"""
Command-line interface for operating a local profile.
"""
