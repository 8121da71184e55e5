"""
Set-Cookie header parsing.
"""
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urlsplit

from models.cookie import CookieEntry


def parse_set_cookie(raw: str, url: str, now: Optional[float] = None) -> Optional[CookieEntry]:
    """
    Parse one Set-Cookie value received from `url`.

    Returns None for malformed strings and for cookies whose Domain
    attribute does not cover the URL host.
    """
    host = urlsplit(url).hostname
    if not host or not raw:
        return None

    parts = raw.split(";")
    name, sep, value = parts[0].partition("=")
    name = name.strip()
    if not sep or not name:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]

    domain = host
    path = "/"
    expires: Optional[int] = None
    max_age: Optional[int] = None
    secure = False
    http_only = False
    same_site: Optional[str] = None

    for attribute in parts[1:]:
        key, _, attr_value = attribute.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()

        if key == "domain" and attr_value:
            bare = attr_value.lower().lstrip(".")
            if host != bare and not host.endswith("." + bare):
                return None
            domain = "." + bare
        elif key == "path" and attr_value.startswith("/"):
            path = attr_value
        elif key == "expires":
            expires = _parse_expires(attr_value)
        elif key == "max-age":
            try:
                max_age = int(attr_value)
            except ValueError:
                continue
        elif key == "secure":
            secure = True
        elif key == "httponly":
            http_only = True
        elif key == "samesite" and attr_value:
            same_site = attr_value.capitalize()

    if max_age is not None:
        now = time.time() if now is None else now
        expires = int(now) + max_age if max_age > 0 else 0

    return CookieEntry(
        name=name,
        value=value,
        domain=domain,
        path=path,
        expires=expires,
        secure=secure,
        http_only=http_only,
        same_site=same_site,
    )


def _parse_expires(value: str) -> Optional[int]:
    for candidate in (value, value.replace("-", " ")):
        try:
            moment = parsedate_to_datetime(candidate)
        except (TypeError, ValueError, IndexError):
            continue
        if moment is None:
            continue
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return int(moment.timestamp())
    return None


def format_expires(expires: Optional[int]) -> str:
    if expires is None:
        return "session"
    return datetime.fromtimestamp(expires, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
