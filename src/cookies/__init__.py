"""
Persistent cookie jar.
"""

from .parser import parse_set_cookie, format_expires
from .store import CookieStore

__all__ = [
    'CookieStore',
    'parse_set_cookie',
    'format_expires',
]
