"""
Concurrent cookie jar with JSON persistence.
"""
import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from models.cookie import CookieEntry

from .parser import parse_set_cookie

logger = logging.getLogger(__name__)


class CookieStore:
    """
    Cookie entries keyed by (domain, name).

    All methods take the internal lock, so the store can be shared by the
    capture consumer, the HTTP client and the CLI without outside locking.
    """

    def __init__(self, file_path: Optional[Union[str, Path]] = None):
        self.file_path = Path(file_path) if file_path is not None else None
        self._entries: Dict[Tuple[str, str], CookieEntry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---- mutation ----

    def add(self, entry: CookieEntry) -> None:
        """Insert or overwrite the entry with the same (domain, name)."""
        with self._lock:
            self._entries[entry.key] = entry

    def add_from_set_cookie(self, url: str, raw: str) -> Optional[CookieEntry]:
        """Parse a Set-Cookie value in the context of `url` and store it."""
        entry = parse_set_cookie(raw, url)
        if entry is None:
            logger.debug("Ignoring malformed Set-Cookie from %s: %r", url, raw)
            return None
        self.add(entry)
        return entry

    def prune_expired(self, now: Optional[float] = None) -> int:
        """Drop entries whose expiry is strictly in the past. Returns how many."""
        now = time.time() if now is None else now
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    # ---- selection ----

    def matching(self, url: str, now: Optional[float] = None) -> List[CookieEntry]:
        parts = urlsplit(url)
        host = parts.hostname or ""
        path = parts.path or "/"
        is_secure = parts.scheme.lower() == "https"
        now = time.time() if now is None else now

        with self._lock:
            entries = list(self._entries.values())
        return [
            entry for entry in entries
            if entry.matches_domain(host)
            and entry.matches_path(path)
            and not entry.is_expired(now)
            and (is_secure or not entry.secure)
        ]

    def cookies_for(self, url: str, now: Optional[float] = None) -> List[str]:
        """`name=value` pairs to attach to a request for `url`, in insertion order."""
        return [entry.to_header_pair() for entry in self.matching(url, now)]

    def list(self, domain_filter: Optional[str] = None) -> List[CookieEntry]:
        with self._lock:
            entries = list(self._entries.values())
        if domain_filter:
            needle = domain_filter.lower()
            entries = [entry for entry in entries if needle in entry.domain]
        return entries

    # ---- persistence ----

    def load_from_file(self, path: Optional[Union[str, Path]] = None) -> int:
        """
        Merge entries from a JSON array on disk.

        A missing or corrupt file leaves the store as it was. Returns the
        number of entries loaded.
        """
        path = Path(path) if path is not None else self.file_path
        if path is None:
            return 0
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cookie file %s: %s", path, exc)
            return 0
        if not isinstance(raw, list):
            logger.warning("Ignoring cookie file %s: expected a JSON array", path)
            return 0

        loaded = 0
        for item in self._valid_entries(raw):
            self.add(item)
            loaded += 1
        return loaded

    def save_to_file(self, path: Optional[Union[str, Path]] = None) -> None:
        """Atomically rewrite the file with every current entry."""
        path = Path(path) if path is not None else self.file_path
        if path is None:
            raise ValueError("No cookie file path configured")

        with self._lock:
            payload = [entry.to_dict() for entry in self._entries.values()]
        content = json.dumps(payload, indent=2)

        directory = path.parent if str(path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    @staticmethod
    def _valid_entries(items: Iterable) -> Iterable[CookieEntry]:
        for item in items:
            try:
                yield CookieEntry.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping invalid cookie record %r: %s", item, exc)
