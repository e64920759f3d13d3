"""
NetworkManager-based WiFi backend.
Uses nmcli for radio, connection and profile operations, iw for interface
discovery, and ip for addressing.
"""

import logging
import re
from typing import List, Optional

from wifiwand.errors import CommandNotFoundError, NetworkNotFoundError
from wifiwand.services.command_runner import CommandExecutionError, CommandRunner
from wifiwand.wifi.backend import AccessErrorKind, SecretLookup, WifiBackend, WifiNetwork
from wifiwand.wifi.profiles import ProfileResolver, split_terse_line
from wifiwand.wifi.security import SecurityType, classify, nmcli_secret_parameter

logger = logging.getLogger(__name__)

WIRELESS_CONNECTION_TYPE = '802-11-wireless'
# nmcli exit code when the device is not active, i.e. already disconnected
NMCLI_NOT_ACTIVE_EXIT_CODE = 6

_NOT_FOUND_PATTERNS = (
    re.compile(r'No network with SSID', re.IGNORECASE),
    re.compile(r'Connection activation failed', re.IGNORECASE),
)


class NetworkManagerBackend(WifiBackend):
    """WiFi backend implementation using NetworkManager."""

    os_id = 'ubuntu'

    def __init__(self, runner: Optional[CommandRunner] = None,
                 wifi_interface: Optional[str] = None,
                 profile_resolver: Optional[ProfileResolver] = None):
        super().__init__(runner, wifi_interface)
        self.profile_resolver = profile_resolver or ProfileResolver(self.runner)

    def validate_preconditions(self) -> None:
        missing = []
        if not self.runner.command_available('iw'):
            missing.append('iw (install: sudo apt install iw)')
        if not self.runner.command_available('nmcli'):
            missing.append('nmcli (install: sudo apt install network-manager)')
        if missing:
            raise CommandNotFoundError(missing)

    def detect_wifi_interface(self) -> Optional[str]:
        output = self.runner.run(['iw', 'dev']).stdout
        for line in output.splitlines():
            parts = line.split()
            if len(parts) == 2 and parts[0] == 'Interface':
                return parts[1]
        return None

    def is_wifi_interface(self, interface: str) -> bool:
        result = self.runner.run(['iw', 'dev', interface, 'info'], raise_on_error=False)
        return result.succeeded and bool(result.stdout.strip())

    def wifi_on(self) -> bool:
        result = self.runner.run(['nmcli', 'radio', 'wifi'], raise_on_error=False)
        return 'enabled' in result.stdout

    def set_radio_power(self, on: bool) -> None:
        self.runner.run(['nmcli', 'radio', 'wifi', 'on' if on else 'off'])

    def connected_network_name(self) -> Optional[str]:
        result = self.runner.run(
            ['nmcli', '-t', '-f', 'ACTIVE,SSID', 'device', 'wifi'], raise_on_error=False)
        for line in result.stdout.splitlines():
            fields = split_terse_line(line)
            if len(fields) >= 2 and fields[0] == 'yes':
                return fields[1] or None
        return None

    def connect(self, ssid: str, password: Optional[str] = None) -> None:
        """
        Connect to `ssid`, reusing the most recent saved profile where possible.

        With a password, an existing profile is only modified if its stored
        secret differs; `nmcli connection modify` is slow and disruptive.
        Without a password, a saved profile is activated as is, and an unsaved
        network is treated as open.

        Raises:
            NetworkNotFoundError: If nmcli cannot find or activate the network
            CommandExecutionError: For any other nmcli failure
        """
        if self.connected_network_name() == ssid:
            return

        try:
            if password is not None:
                self._connect_with_password(ssid, password)
            else:
                self._connect_without_password(ssid)
        except CommandExecutionError as e:
            if any(p.search(e.output) for p in _NOT_FOUND_PATTERNS):
                raise NetworkNotFoundError(ssid) from e
            raise

    def _connect_with_password(self, ssid: str, password: str) -> None:
        profile = self.profile_resolver.find_best_profile(ssid)
        if profile is None:
            # Creates a new profile as a side effect
            self._device_connect(ssid, password)
            return

        stored = self._profile_secret(profile.name).secret if profile.has_stored_secret else None
        if password != stored:
            parameter = self.security_parameter(ssid, password_supplied=True)
            if parameter is None:
                logger.info(f"Security type of {ssid!r} unknown; connecting directly")
                self._device_connect(ssid, password)
                return
            logger.info(f"Updating stored password of profile {profile.name!r}")
            self.runner.run(['nmcli', 'connection', 'modify', profile.name, parameter, password])

        self.runner.run(['nmcli', 'connection', 'up', profile.name])

    def _connect_without_password(self, ssid: str) -> None:
        profile = self.profile_resolver.find_best_profile(ssid)
        if profile is not None:
            self.runner.run(['nmcli', 'connection', 'up', profile.name])
        else:
            self._device_connect(ssid)

    def _device_connect(self, ssid: str, password: Optional[str] = None) -> None:
        command = ['nmcli', 'dev', 'wifi', 'connect', ssid]
        if password is not None:
            command += ['password', password]
        self.runner.run(command)

    def network_security(self, ssid: str) -> Optional[SecurityType]:
        """Classified security of a visible network, or None if it is not visible."""
        result = self.runner.run(
            ['nmcli', '-t', '-f', 'SSID,SECURITY', 'dev', 'wifi', 'list'], raise_on_error=False)
        if not result.succeeded:
            return None
        for line in result.stdout.splitlines():
            fields = split_terse_line(line)
            if fields[0] == ssid:
                return classify(':'.join(fields[1:]))
        return None

    def security_parameter(self, ssid: str, password_supplied: bool = False) -> Optional[str]:
        """nmcli property holding the secret for `ssid`, or None if it cannot be determined."""
        security = self.network_security(ssid)
        if security is None:
            return None
        return nmcli_secret_parameter(security, password_supplied)

    def disconnect(self) -> None:
        if not self.wifi_interface:
            return
        try:
            self.runner.run(['nmcli', 'dev', 'disconnect', self.wifi_interface])
        except CommandExecutionError as e:
            if e.exit_code == NMCLI_NOT_ACTIVE_EXIT_CODE:
                logger.debug(f"{self.wifi_interface} was not connected")
                return
            raise

    def available_networks(self) -> List[WifiNetwork]:
        output = self.runner.run(
            ['nmcli', '-t', '-f', 'SSID,SIGNAL,SECURITY', 'dev', 'wifi', 'list']).stdout
        networks = []
        for line in output.splitlines():
            fields = split_terse_line(line)
            if len(fields) < 2 or not fields[0]:
                continue
            try:
                signal = int(fields[1])
            except ValueError:
                signal = 0
            networks.append(WifiNetwork(fields[0], signal, classify(':'.join(fields[2:]))))
        return networks

    def preferred_networks(self) -> List[str]:
        output = self.runner.run(['nmcli', '-t', '-f', 'NAME,TYPE', 'connection', 'show']).stdout
        names = set()
        for line in output.splitlines():
            fields = split_terse_line(line)
            if len(fields) >= 2 and fields[1] == WIRELESS_CONNECTION_TYPE and fields[0]:
                names.add(fields[0])
        return sorted(names)

    def preferred_network_secret(self, network_name: str) -> SecretLookup:
        return self._profile_secret(network_name)

    def _profile_secret(self, profile_name: str) -> SecretLookup:
        result = self.profile_resolver.read_secret(profile_name)
        if result.succeeded:
            secret = result.stdout.strip()
            return SecretLookup.found(secret) if secret else SecretLookup.not_found()
        if re.search(r'no such connection profile|not found', result.output, re.IGNORECASE):
            return SecretLookup.not_found()
        return SecretLookup.access_error(AccessErrorKind.OTHER, result.output.strip())

    def remove_preferred_network(self, network_name: str) -> None:
        if network_name not in self.preferred_networks():
            return
        self.runner.run(['nmcli', 'connection', 'delete', network_name])

    def ip_address(self) -> Optional[str]:
        result = self.runner.run(
            ['ip', '-4', '-o', 'addr', 'show', 'dev', self.wifi_interface], raise_on_error=False)
        match = re.search(r'\binet (\d+\.\d+\.\d+\.\d+)', result.stdout)
        return match.group(1) if match else None

    def mac_address(self) -> Optional[str]:
        result = self.runner.run(['ip', 'link', 'show', self.wifi_interface], raise_on_error=False)
        match = re.search(r'link/ether ([0-9a-fA-F:]{17})', result.stdout)
        return match.group(1) if match else None

    def connection_security_type(self) -> Optional[SecurityType]:
        network_name = self.connected_network_name()
        if not network_name:
            return None
        return self.network_security(network_name)
