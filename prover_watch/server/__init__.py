"""
Server Module

aiohttp.web HTTP API for scans and watchlist management.
"""

from .app import ApiServer

__all__ = ["ApiServer"]
