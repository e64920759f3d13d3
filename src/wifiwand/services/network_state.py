"""
Capture and restore of radio and connection state, for disruptive tests.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from wifiwand.errors import WifiWandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkState:
    wifi_enabled: bool
    network_name: Optional[str] = None
    network_password: Optional[str] = None
    interface: Optional[str] = None


class NetworkStateManager:
    """Snapshots the model's network state and puts it back later."""

    def __init__(self, model):
        self.model = model

    def capture_network_state(self) -> NetworkState:
        network_name = self.model.connected_network_name()
        password = None
        if network_name:
            try:
                password = self.model.preferred_network_password(network_name)
            except WifiWandError as e:
                logger.debug(f"No saved password captured for {network_name!r}: {e}")
        return NetworkState(
            wifi_enabled=self.model.is_wifi_on(),
            network_name=network_name,
            network_password=password,
            interface=self.model.wifi_interface,
        )

    def restore_network_state(self, state: Optional[NetworkState],
                              fail_silently: bool = False) -> Optional[str]:
        """
        Return the radio and connection to `state`.

        Returns:
            "no_state_to_restore" when state is None, "already_connected" when
            nothing needed doing, otherwise None

        Raises:
            WifiWandError: Unless fail_silently is set, in which case a warning is logged
        """
        if state is None:
            return "no_state_to_restore"

        try:
            if not state.wifi_enabled:
                self.model.wifi_off()
                return None

            self.model.wifi_on()
            if not state.network_name:
                return None
            if self.model.connected_network_name() == state.network_name:
                return "already_connected"

            password = state.network_password
            if password is None and state.network_name in (self.model.preferred_networks() or []):
                password = self.model.preferred_network_password(state.network_name)
            self.model.connect(state.network_name, password)
            self.model.till("conn", timeout_secs=self.model.config.connect_timeout_secs)
            return None
        except WifiWandError as e:
            if not fail_silently:
                raise
            logger.warning(f"Could not restore network state: {e}")
            if state.network_name:
                logger.warning(f"You may need to manually reconnect to: {state.network_name}")
            return None
