"""
WifiModel: the entry point for library consumers.
Combines an OS backend with the connection manager, status waiter,
connectivity tester and network state manager.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from wifiwand.config import WifiWandConfig
from wifiwand.errors import (
    PreferredNetworkNotFoundError,
    WaitTimeoutError,
    WifiDisableError,
    WifiEnableError,
)
from wifiwand.services.connection_manager import ConnectionManager
from wifiwand.services.connectivity import NetworkConnectivityTester
from wifiwand.services.network_state import NetworkState, NetworkStateManager
from wifiwand.services.status_waiter import StatusWaiter, WaitTarget
from wifiwand.wifi.backend import WifiBackend

logger = logging.getLogger(__name__)


class WifiModel:
    """OS-independent WiFi operations over a WifiBackend."""

    def __init__(
        self,
        backend: WifiBackend,
        config: Optional[WifiWandConfig] = None,
        connectivity_tester: Optional[NetworkConnectivityTester] = None,
    ):
        """
        Args:
            backend: OS-specific backend, with its interface already initialized
            config: Timeouts and connectivity settings; defaults when None
            connectivity_tester: Override for the internet checks
        """
        self.backend = backend
        self.config = config or WifiWandConfig()
        self.connectivity_tester = (connectivity_tester or
                                    NetworkConnectivityTester.from_config(self.config))
        self.status_waiter = StatusWaiter(self, self.config.poll_interval_secs)
        self.connection_manager = ConnectionManager(self)
        self.network_state_manager = NetworkStateManager(self)

    @property
    def wifi_interface(self) -> Optional[str]:
        return self.backend.wifi_interface

    # Radio

    def is_wifi_on(self) -> bool:
        return self.backend.wifi_on()

    def wifi_on(self) -> None:
        """
        Power the radio on and wait until the OS reports it on.

        Raises:
            WifiEnableError: If the radio is still off after the toggle timeout
        """
        if self.is_wifi_on():
            return
        self.backend.set_radio_power(True)
        try:
            self.till(WaitTarget.ON, timeout_secs=self.config.wifi_toggle_timeout_secs)
        except WaitTimeoutError as e:
            raise WifiEnableError() from e

    def wifi_off(self) -> None:
        """
        Power the radio off and wait until the OS reports it off.

        Raises:
            WifiDisableError: If the radio is still on after the toggle timeout
        """
        if not self.is_wifi_on():
            return
        self.backend.set_radio_power(False)
        try:
            self.till(WaitTarget.OFF, timeout_secs=self.config.wifi_toggle_timeout_secs)
        except WaitTimeoutError as e:
            raise WifiDisableError() from e

    def cycle_network(self) -> None:
        """Turn the radio off and back on, e.g. to pick up a fresh DHCP lease."""
        self.wifi_off()
        self.wifi_on()

    def till(self, target: Union[WaitTarget, str],
             timeout_secs: Optional[float] = None,
             poll_interval_secs: Optional[float] = None) -> None:
        """Block until `target` (on, off, conn, disc) is reached; see StatusWaiter.wait_for."""
        return self.status_waiter.wait_for(target, timeout_secs, poll_interval_secs)

    # Connection

    def connected_network_name(self) -> Optional[str]:
        if not self.is_wifi_on():
            return None
        return self.backend.connected_network_name()

    def connected_to(self, network_name: str) -> bool:
        return network_name == self.connected_network_name()

    def connect(self, network_name, password=None) -> None:
        self.connection_manager.connect(network_name, password)

    def last_connection_used_saved_password(self) -> bool:
        return self.connection_manager.last_connection_used_saved_password()

    def disconnect(self) -> None:
        if not self.is_wifi_on():
            return None
        self.backend.disconnect()
        return None

    # Saved networks

    def preferred_networks(self) -> List[str]:
        return self.backend.preferred_networks()

    def preferred_network_password(self, network_name: str) -> Optional[str]:
        """
        The stored secret of a saved network, or None if it has none.

        Raises:
            PreferredNetworkNotFoundError: If the network is not saved
            KeychainError: Or one of its subclasses, if the store cannot be read
        """
        if network_name not in self.preferred_networks():
            raise PreferredNetworkNotFoundError(network_name)
        return self.backend.preferred_network_secret(network_name).value_or_raise(network_name)

    def remove_preferred_networks(self, *network_names) -> List[str]:
        """Remove the named saved networks; returns the names that were saved and removed."""
        if len(network_names) == 1 and isinstance(network_names[0], (list, tuple, set)):
            network_names = tuple(network_names[0])
        preferred = self.preferred_networks()
        to_remove = [name for name in network_names if name in preferred]
        for name in to_remove:
            logger.info(f"Removing preferred network {name!r}")
            self.backend.remove_preferred_network(name)
        return to_remove

    # Information

    def available_network_names(self) -> Optional[List[str]]:
        if not self.is_wifi_on():
            return None
        return self.backend.available_network_names()

    def ip_address(self) -> Optional[str]:
        if not self.is_wifi_on():
            return None
        return self.backend.ip_address()

    def mac_address(self) -> Optional[str]:
        return self.backend.mac_address()

    def connection_security_type(self):
        if not self.is_wifi_on():
            return None
        return self.backend.connection_security_type()

    def connected_to_internet(self) -> bool:
        """False whenever the radio is off, even if another interface has internet."""
        if not self.is_wifi_on():
            return False
        return self.connectivity_tester.connected_to_internet()

    def public_ip_address_info(self) -> Optional[Dict[str, Any]]:
        return self.connectivity_tester.public_ip_address_info()

    def wifi_info(self) -> Dict[str, Any]:
        tcp = self.connectivity_tester.tcp_connectivity()
        dns = self.connectivity_tester.dns_working()
        security = self.connection_security_type()
        info: Dict[str, Any] = {
            'wifi_on': self.is_wifi_on(),
            'internet_tcp_connectivity': tcp,
            'dns_working': dns,
            'internet_on': tcp and dns,
            'interface': self.wifi_interface,
            'network': self.connected_network_name(),
            'security': security.value if security else None,
            'ip_address': self.ip_address(),
            'mac_address': self.mac_address(),
            'timestamp': datetime.now(),
        }
        if info['internet_on']:
            info['public_ip'] = self.public_ip_address_info()
        return info

    @staticmethod
    def random_mac_address() -> str:
        """A random locally administered unicast MAC address."""
        octets = [random.randint(0, 255) for _ in range(6)]
        octets[0] = (octets[0] & 0xFC) | 0x02
        return ':'.join(f"{octet:02x}" for octet in octets)

    # Testing aids

    def capture_network_state(self) -> NetworkState:
        return self.network_state_manager.capture_network_state()

    def restore_network_state(self, state: Optional[NetworkState],
                              fail_silently: bool = False) -> Optional[str]:
        return self.network_state_manager.restore_network_state(state, fail_silently)
