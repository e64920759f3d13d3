import os
from dataclasses import dataclass, field, fields
from typing import Any, List, Mapping, Optional, Tuple

import yaml

DEFAULT_CONFIG_PATH = os.path.join('~', '.config', 'wifiwand', 'config.yaml')

# Poll hardware state twice a second.
DEFAULT_POLL_INTERVAL_SECS = 0.5
# Quick radio on/off toggles.
WIFI_TOGGLE_TIMEOUT_SECS = 5.0
# Full association cycle: driver, authentication, DHCP.
CONNECT_TIMEOUT_SECS = 15.0

DEFAULT_TCP_ENDPOINTS: Tuple[Tuple[str, int], ...] = (
    ('1.1.1.1', 443),
    ('8.8.8.8', 443),
    ('9.9.9.9', 443),
)
DEFAULT_DNS_DOMAINS: Tuple[str, ...] = (
    'google.com',
    'cloudflare.com',
    'github.com',
)


def config_path(path: str | None = None) -> str:
    cfg_path = path or os.environ.get('WIFIWAND_CONFIG') or DEFAULT_CONFIG_PATH
    return os.path.abspath(os.path.expanduser(cfg_path))


def load_config(path: str | None = None) -> dict:
    cfg_path = config_path(path)
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as fh:
        return yaml.safe_load(fh) or {}


@dataclass
class WifiWandConfig:
    """
    Explicit settings handed to the model factory and the services it builds.

    `os_id` pins the operating system ("mac" or "ubuntu") instead of probing
    the host; tests use it to build models deterministically.
    """

    verbose: bool = False
    wifi_interface: Optional[str] = None
    os_id: Optional[str] = None
    poll_interval_secs: float = DEFAULT_POLL_INTERVAL_SECS
    wifi_toggle_timeout_secs: float = WIFI_TOGGLE_TIMEOUT_SECS
    connect_timeout_secs: float = CONNECT_TIMEOUT_SECS
    tcp_endpoints: List[Tuple[str, int]] = field(
        default_factory=lambda: list(DEFAULT_TCP_ENDPOINTS))
    dns_domains: List[str] = field(
        default_factory=lambda: list(DEFAULT_DNS_DOMAINS))
    tcp_timeout_secs: float = 5.0
    dns_timeout_secs: float = 5.0
    connectivity_timeout_secs: float = 6.0
    log_level: str = 'WARNING'
    log_file: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None,
                     **overrides) -> 'WifiWandConfig':
        values = dict(data or {})
        values.update({k: v for k, v in overrides.items() if v is not None})
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        if 'tcp_endpoints' in kwargs:
            kwargs['tcp_endpoints'] = [_parse_endpoint(e)
                                       for e in kwargs['tcp_endpoints']]
        if 'dns_domains' in kwargs:
            kwargs['dns_domains'] = [str(d) for d in kwargs['dns_domains']]
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str | None = None, **overrides) -> 'WifiWandConfig':
        return cls.from_mapping(load_config(path), **overrides)


def _parse_endpoint(entry) -> Tuple[str, int]:
    # Accepts {"host": ..., "port": ...}, "host:port" or a 2-item sequence.
    if isinstance(entry, Mapping):
        return str(entry['host']), int(entry['port'])
    if isinstance(entry, str):
        host, _, port = entry.rpartition(':')
        return host, int(port)
    host, port = entry
    return str(host), int(port)
