"""
Cookie jar entry model.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class CookieEntry:
    """
    One stored cookie.

    Entries are keyed by (domain, name); the domain is lower-cased at
    construction so lookups never need to normalize it again.
    """
    name: str
    value: str
    domain: str
    path: str = "/"
    expires: Optional[int] = None
    """Expiry as Unix seconds, None for a session cookie."""
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Cookie name must not be empty")
        object.__setattr__(self, "domain", self.domain.strip().lower())
        if not self.path:
            object.__setattr__(self, "path", "/")

    @property
    def key(self) -> Tuple[str, str]:
        return (self.domain, self.name)

    def is_expired(self, now: float) -> bool:
        return self.expires is not None and now > self.expires

    def matches_domain(self, host: str) -> bool:
        """Exact host match, or suffix match against a leading-dot domain."""
        host = host.lower()
        if host == self.domain:
            return True
        if self.domain.startswith("."):
            return host == self.domain[1:] or host.endswith(self.domain)
        return False

    def matches_path(self, path: str) -> bool:
        return (path or "/").startswith(self.path)

    def to_header_pair(self) -> str:
        return f"{self.name}={self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CookieEntry":
        expires = data.get("expires")
        return cls(
            name=str(data["name"]),
            value=str(data.get("value", "")),
            domain=str(data.get("domain", "")),
            path=str(data.get("path") or "/"),
            expires=int(expires) if expires is not None else None,
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("http_only", False)),
            same_site=data.get("same_site"),
        )
