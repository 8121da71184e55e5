"""
Append-only request/response log.
"""

from .logger import RequestLogger

__all__ = ['RequestLogger']
