"""
Helpers shared by the CLI commands.
"""
import contextlib
import logging
from typing import Dict, Iterable, Iterator, Tuple

from cookies.store import CookieStore
from http_client.client import HttpClient
from request_log.logger import RequestLogger

from .config import Config

logger = logging.getLogger(__name__)


def parse_headers(values: Iterable[str]) -> Dict[str, str]:
    """Turn repeated `Name: Value` options into a dict; malformed entries are ignored."""
    headers: Dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        name = name.strip()
        if not sep or not name:
            logger.warning("Ignoring malformed header %r", raw)
            continue
        headers[name] = value.strip()
    return headers


def load_cookie_store(config: Config) -> CookieStore:
    store = CookieStore(config.storage.cookie_file)
    loaded = store.load_from_file()
    logger.debug("Loaded %d cookies from %s", loaded, config.storage.cookie_file)
    return store


@contextlib.contextmanager
def client_session(config: Config) -> Iterator[Tuple[CookieStore, HttpClient, RequestLogger]]:
    """Cookie jar, client and request log for one command; the jar is saved on the way out."""
    store = load_cookie_store(config)
    with HttpClient(store) as client, RequestLogger(config.storage.log_file) as request_logger:
        try:
            yield store, client, request_logger
        finally:
            store.save_to_file()
