"""
Runtime configuration for the riddler CLI.

Paths are resolved here once and handed to constructors; no library
module reads a global path.
"""
import sys
from dataclasses import dataclass, field
from pathlib import Path

from capture.monitor import DEFAULT_MAX_MEMORY

DEFAULT_FILTER = "tcp port 80 or tcp port 443"


def default_interface() -> str:
    return "en0" if sys.platform == "darwin" else "eth0"


@dataclass
class NetworkConfig:
    interface: str = field(default_factory=default_interface)
    filter: str = DEFAULT_FILTER
    max_memory_usage: int = DEFAULT_MAX_MEMORY


@dataclass
class ProxyConfig:
    bind_address: str = "127.0.0.1"
    port: int = 8080


@dataclass
class StorageConfig:
    cookie_file: Path = Path("./cookies.json")
    log_file: Path = Path("./requests.log")
    report_file: Path = Path("./performance_report.json")


@dataclass
class Config:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
