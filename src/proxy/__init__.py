"""
HTTP proxy with CONNECT tunnelling.
"""

from .server import ProxyServer, ProxyRequestHandler, parse_connect_target, placeholder_response

__all__ = [
    'ProxyServer',
    'ProxyRequestHandler',
    'parse_connect_target',
    'placeholder_response',
]
