"""
Connection orchestration.

Runs the OS-independent part of a connect: input validation, the
already-connected short circuit, saved password resolution, radio power-on,
delegation to the backend, and a final check that the requested network is
actually the one associated.
"""

import logging
from typing import Optional

from wifiwand.errors import InvalidNetworkNameError, NetworkConnectionError, WifiWandError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Connects the model's backend to a named network.

    The model passed in must provide `backend`, `connected_network_name()`
    and `wifi_on()`.
    """

    def __init__(self, model):
        self.model = model
        self._used_saved_password = False

    @property
    def backend(self):
        return self.model.backend

    def connect(self, network_name, password=None) -> None:
        """
        Connect to `network_name`, using the saved password when none is given.

        Raises:
            InvalidNetworkNameError: If the name is empty (no OS command is run)
            WifiEnableError: If the radio cannot be powered on
            NetworkNotFoundError, NetworkAuthenticationError: From the backend
            NetworkConnectionError: If a different network, or none, is associated afterwards
        """
        self._used_saved_password = False

        network_name = str(network_name) if network_name is not None else ''
        password = str(password) if password else None

        if not network_name:
            raise InvalidNetworkNameError(network_name)

        if self.model.connected_network_name() == network_name:
            logger.debug(f"Already connected to {network_name!r}")
            return

        password, used_saved_password = self.resolve_password(network_name, password)

        self.model.wifi_on()
        logger.info(f"Connecting to {network_name!r}"
                    f"{' with saved password' if used_saved_password else ''}")
        self.backend.connect(network_name, password)
        self._used_saved_password = used_saved_password

        self.verify_connection(network_name, password)

    def resolve_password(self, network_name: str,
                         password: Optional[str]) -> tuple:
        """
        Return (password, used_saved_password).

        A saved secret is only looked up when no password was supplied and the
        network is one of the preferred networks. Credential store failures
        are logged and the connect continues without a password.
        """
        if password is not None:
            return password, False

        try:
            preferred = self.backend.preferred_networks()
        except WifiWandError as e:
            logger.debug(f"Could not list preferred networks: {e}")
            preferred = []
        if network_name not in preferred:
            return None, False

        lookup = self.backend.preferred_network_secret(network_name)
        if lookup.is_found and lookup.secret:
            return lookup.secret, True
        if lookup.error_kind is not None:
            logger.warning(
                f"Could not read saved password for {network_name!r} "
                f"({lookup.error_kind.value}): {lookup.detail}")
        return None, False

    def verify_connection(self, network_name: str, password: Optional[str]) -> None:
        actual = self.model.connected_network_name()
        if actual != network_name:
            raise NetworkConnectionError(network_name, actual, password is not None)
        logger.info(f"Connected to {network_name!r}")

    def last_connection_used_saved_password(self) -> bool:
        return self._used_saved_password
