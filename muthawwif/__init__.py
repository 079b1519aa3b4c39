"""Muthawwif consultant site: content, catalog, auth and admin backend"""

__version__ = "1.0.0"
