"""
Internet connectivity checks.
TCP reachability and DNS resolution are each probed against several targets
in parallel; the first success wins.
"""

import logging
import socket
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests

from wifiwand.config import DEFAULT_DNS_DOMAINS, DEFAULT_TCP_ENDPOINTS

logger = logging.getLogger(__name__)

PUBLIC_IP_INFO_URL = "https://ipinfo.io/json"


class NetworkConnectivityTester:
    """Checks whether the host can reach the internet."""

    def __init__(
        self,
        tcp_endpoints: Sequence[Tuple[str, int]] = DEFAULT_TCP_ENDPOINTS,
        dns_domains: Sequence[str] = DEFAULT_DNS_DOMAINS,
        tcp_timeout_secs: float = 5.0,
        dns_timeout_secs: float = 5.0,
        overall_timeout_secs: float = 6.0,
        public_ip_timeout_secs: int = 10,
    ):
        """
        Args:
            tcp_endpoints: (host, port) pairs to open TCP connections to
            dns_domains: Domain names to resolve
            tcp_timeout_secs: Connect timeout for each TCP attempt
            dns_timeout_secs: Limit for each DNS lookup
            overall_timeout_secs: Limit for each parallel check as a whole
            public_ip_timeout_secs: HTTP request timeout for the public IP lookup
        """
        self.tcp_endpoints = list(tcp_endpoints)
        self.dns_domains = list(dns_domains)
        self.tcp_timeout_secs = tcp_timeout_secs
        self.dns_timeout_secs = dns_timeout_secs
        self.overall_timeout_secs = overall_timeout_secs
        self.public_ip_timeout_secs = public_ip_timeout_secs

    @classmethod
    def from_config(cls, config) -> 'NetworkConnectivityTester':
        return cls(
            tcp_endpoints=config.tcp_endpoints,
            dns_domains=config.dns_domains,
            tcp_timeout_secs=config.tcp_timeout_secs,
            dns_timeout_secs=config.dns_timeout_secs,
            overall_timeout_secs=config.connectivity_timeout_secs,
        )

    def connected_to_internet(self, tcp_working: Optional[bool] = None,
                              dns_working: Optional[bool] = None) -> bool:
        """True only when both TCP and DNS work; either result may be supplied."""
        tcp = self.tcp_connectivity() if tcp_working is None else tcp_working
        if not tcp:
            return False
        dns = self.dns_working() if dns_working is None else dns_working
        return bool(dns)

    def tcp_connectivity(self) -> bool:
        logger.debug("Testing TCP connectivity to: " +
                     ", ".join(f"{host}:{port}" for host, port in self.tcp_endpoints))
        return self._first_success(
            [lambda e=endpoint: self._try_tcp(e) for endpoint in self.tcp_endpoints])

    def dns_working(self) -> bool:
        logger.debug(f"Testing DNS resolution for: {', '.join(self.dns_domains)}")
        return self._first_success(
            [lambda d=domain: self._try_dns(d) for domain in self.dns_domains],
            min(self.dns_timeout_secs, self.overall_timeout_secs))

    def _try_tcp(self, endpoint: Tuple[str, int]) -> bool:
        host, port = endpoint
        try:
            with socket.create_connection((host, port), timeout=self.tcp_timeout_secs):
                logger.debug(f"Connected to {host}:{port}")
                return True
        except OSError as e:
            logger.debug(f"Failed to connect to {host}:{port}: {e.__class__.__name__}")
            return False

    def _try_dns(self, domain: str) -> bool:
        try:
            socket.getaddrinfo(domain, None)
            logger.debug(f"Resolved {domain}")
            return True
        except (socket.gaierror, UnicodeError) as e:
            logger.debug(f"Failed to resolve {domain}: {e.__class__.__name__}")
            return False

    def _first_success(self, checks: List[Callable[[], bool]],
                       timeout_secs: Optional[float] = None) -> bool:
        if not checks:
            return False
        if timeout_secs is None:
            timeout_secs = self.overall_timeout_secs
        deadline = time.monotonic() + timeout_secs
        executor = ThreadPoolExecutor(max_workers=len(checks),
                                      thread_name_prefix='wifiwand-connectivity')
        try:
            pending = {executor.submit(check) for check in checks}
            while pending:
                remaining = max(0.0, deadline - time.monotonic())
                done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                if not done:
                    logger.debug("Connectivity check timed out")
                    return False
                if any(future.result() for future in done):
                    return True
            return False
        finally:
            # Stragglers finish in the background, bounded by their own timeouts
            executor.shutdown(wait=False, cancel_futures=True)

    def public_ip_address_info(self) -> Optional[Dict[str, Any]]:
        """
        Public IP address details from ipinfo.io.

        Returns:
            The decoded JSON object, or None on error
        """
        try:
            response = requests.get(PUBLIC_IP_INFO_URL, timeout=self.public_ip_timeout_secs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Public IP lookup failed: {e}")
            return None
        except ValueError as e:
            logger.error(f"Failed to parse public IP response: {e}")
            return None
