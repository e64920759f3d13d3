"""
macOS WiFi backend.
Prefers CoreWLAN (through small swift helper scripts) for connecting and
disconnecting; falls back to networksetup / ifconfig when swift or CoreWLAN
is not installed. Queries use networksetup, system_profiler, ipconfig and the
`security` keychain tool.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from wifiwand.errors import (
    CommandNotFoundError,
    NetworkAuthenticationError,
    NetworkNotFoundError,
    UnsupportedSystemError,
)
from wifiwand.services.command_runner import CommandExecutionError, CommandRunner
from wifiwand.wifi.backend import AccessErrorKind, SecretLookup, WifiBackend, WifiNetwork
from wifiwand.wifi.security import SecurityType, classify

logger = logging.getLogger(__name__)

MINIMUM_MACOS_VERSION = '12.0'
SWIFT_SCRIPT_DIR = Path(__file__).parent / 'swift'

# networksetup exits 10 for a non-WiFi interface
NOT_WIFI_INTERFACE_EXIT_CODE = 10

# `security find-generic-password` exit codes
KEYCHAIN_ITEM_NOT_FOUND = 44
KEYCHAIN_ACCESS_DENIED = 45
KEYCHAIN_NON_INTERACTIVE = 51
KEYCHAIN_USER_CANCELLED = 128

_KEYCHAIN_EXIT_CODES = {
    KEYCHAIN_ACCESS_DENIED: AccessErrorKind.DENIED,
    KEYCHAIN_NON_INTERACTIVE: AccessErrorKind.NON_INTERACTIVE,
    KEYCHAIN_USER_CANCELLED: AccessErrorKind.CANCELLED,
}

_CONNECT_NOT_FOUND = re.compile(r'Could not find network', re.IGNORECASE)
_CONNECT_FAILED = re.compile(r'Failed to join network', re.IGNORECASE)


def parse_version(version: Optional[str]) -> Optional[Tuple[int, ...]]:
    if not version:
        return None
    parts = re.findall(r'\d+', version)
    if not parts:
        return None
    return tuple(int(p) for p in parts)


def supported_version(version: Optional[str],
                      minimum: str = MINIMUM_MACOS_VERSION) -> bool:
    parsed = parse_version(version)
    if parsed is None:
        return False
    return parsed >= parse_version(minimum)


class MacOsBackend(WifiBackend):
    """WiFi backend implementation for macOS."""

    os_id = 'mac'

    def __init__(self, runner: Optional[CommandRunner] = None,
                 wifi_interface: Optional[str] = None):
        super().__init__(runner, wifi_interface)
        # Probe result for swift + CoreWLAN, filled in on first use
        self._swift_available: Optional[bool] = None

    # Preconditions and interface

    def validate_preconditions(self) -> None:
        if not self.runner.command_available('networksetup'):
            raise CommandNotFoundError('networksetup')
        self.validate_macos_version()
        if not self.swift_and_corewlan_present():
            logger.warning(
                "Swift/CoreWLAN not available; using networksetup with reduced functionality. "
                "Installing Xcode or the Command Line Tools enables the CoreWLAN path.")

    def macos_version(self) -> Optional[str]:
        result = self.runner.run(['sw_vers', '-productVersion'], raise_on_error=False)
        version = result.stdout.strip()
        return version or None

    def validate_macos_version(self) -> None:
        version = self.macos_version()
        if version is None:
            logger.warning("Could not determine macOS version; continuing")
            return
        if not supported_version(version):
            raise UnsupportedSystemError(f"macOS {MINIMUM_MACOS_VERSION}", version)

    def detect_wifi_interface(self) -> Optional[str]:
        try:
            data = json.loads(self.runner.run(
                ['system_profiler', '-json', 'SPNetworkDataType']).stdout)
        except (CommandExecutionError, json.JSONDecodeError) as e:
            logger.debug(f"system_profiler interface detection failed: {e}")
            return self._detect_wifi_interface_using_networksetup()

        for service in data.get('SPNetworkDataType') or []:
            if service.get('_name') == 'Wi-Fi' and service.get('interface'):
                return service['interface']
        return self._detect_wifi_interface_using_networksetup()

    def _detect_wifi_interface_using_networksetup(self) -> Optional[str]:
        # Output comes in blocks of:
        #   Hardware Port: Wi-Fi
        #   Device: en0
        lines = self.runner.run(['networksetup', '-listallhardwareports']).stdout.splitlines()
        for index, line in enumerate(lines):
            if re.search(r': Wi-Fi$', line.strip()) and index + 1 < len(lines):
                return lines[index + 1].split(': ')[-1].strip() or None
        return None

    def is_wifi_interface(self, interface: str) -> bool:
        result = self.runner.run(
            ['networksetup', '-listpreferredwirelessnetworks', interface], raise_on_error=False)
        return result.exit_code != NOT_WIFI_INTERFACE_EXIT_CODE

    # Radio

    def wifi_on(self) -> bool:
        output = self.runner.run(
            ['networksetup', '-getairportpower', self.wifi_interface], raise_on_error=False).stdout
        return bool(re.search(r'\): On$', output.strip()))

    def set_radio_power(self, on: bool) -> None:
        self.runner.run(
            ['networksetup', '-setairportpower', self.wifi_interface, 'on' if on else 'off'])

    # Connection

    def connected_network_name(self) -> Optional[str]:
        output = self.runner.run(
            ['ipconfig', 'getsummary', self.wifi_interface], raise_on_error=False).stdout
        match = re.search(r'^\s*SSID : (.+)$', output, re.MULTILINE)
        return match.group(1).strip() if match else None

    def swift_and_corewlan_present(self) -> bool:
        """Probe once per backend instance for swift with CoreWLAN."""
        if self._swift_available is None:
            result = self.runner.run(['swift', '-e', 'import CoreWLAN'], raise_on_error=False)
            self._swift_available = result.succeeded
            logger.debug(f"Swift/CoreWLAN available: {self._swift_available}")
        return self._swift_available

    def run_swift_command(self, basename: str, *args: str):
        script = SWIFT_SCRIPT_DIR / f"{basename}.swift"
        return self.runner.run(['swift', str(script), *args])

    def connect(self, ssid: str, password: Optional[str] = None) -> None:
        if self.swift_and_corewlan_present():
            self.connect_using_swift(ssid, password)
        else:
            self.connect_using_networksetup(ssid, password)

    def connect_using_swift(self, ssid: str, password: Optional[str] = None) -> None:
        args = [ssid] if password is None else [ssid, password]
        try:
            self.run_swift_command('WifiNetworkConnector', *args)
        except CommandExecutionError as e:
            self._raise_for_join_output(ssid, e.output)
            raise

    def connect_using_networksetup(self, ssid: str, password: Optional[str] = None) -> None:
        command = ['networksetup', '-setairportnetwork', self.wifi_interface, ssid]
        if password is not None:
            command.append(password)
        # networksetup reports join failures on stdout with exit code 0
        result = self.runner.run(command)
        self._raise_for_join_output(ssid, result.output)

    def _raise_for_join_output(self, ssid: str, output: str) -> None:
        if _CONNECT_NOT_FOUND.search(output):
            raise NetworkNotFoundError(ssid)
        if _CONNECT_FAILED.search(output):
            reason_match = re.search(r'Reason:\s*(.+)', output)
            if reason_match:
                reason = reason_match.group(1).strip()
            else:
                reason = output.strip().splitlines()[-1] if output.strip() else None
            raise NetworkAuthenticationError(ssid, reason)

    def disconnect(self) -> None:
        if self.swift_and_corewlan_present():
            try:
                self.run_swift_command('WifiNetworkDisconnector')
                return
            except CommandExecutionError as e:
                logger.warning(f"Swift disconnect failed, falling back to ifconfig: {e}")

        result = self.runner.run(
            ['sudo', '-n', 'ifconfig', self.wifi_interface, 'disassociate'], raise_on_error=False)
        if not result.succeeded:
            self.runner.run(['ifconfig', self.wifi_interface, 'disassociate'], raise_on_error=False)

    # Networks

    def airport_data(self) -> Dict[str, Any]:
        output = self.runner.run(['system_profiler', '-json', 'SPAirPortDataType']).stdout
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse system_profiler output: {e}") from e

    def _interface_airport_data(self) -> Dict[str, Any]:
        for entry in self.airport_data().get('SPAirPortDataType') or []:
            for interface in entry.get('spairport_airport_interfaces') or []:
                if interface.get('_name') == self.wifi_interface:
                    return interface
        return {}

    def available_networks(self) -> List[WifiNetwork]:
        interface = self._interface_airport_data()
        entries = []
        current = interface.get('spairport_current_network_information')
        if current:
            entries.append(current)
        entries += interface.get('spairport_airport_local_wireless_networks') or []
        entries += interface.get('spairport_airport_other_local_wireless_networks') or []

        networks = []
        for entry in entries:
            name = entry.get('_name')
            if not name:
                continue
            networks.append(WifiNetwork(
                name,
                _signal_strength(entry.get('spairport_signal_noise')),
                classify(entry.get('spairport_security_mode'))))
        return networks

    def connection_security_type(self) -> Optional[SecurityType]:
        network_name = self.connected_network_name()
        if not network_name:
            return None
        for network in self.available_networks():
            if network.ssid == network_name:
                if network.security == SecurityType.UNKNOWN:
                    return None
                return network.security
        return None

    def preferred_networks(self) -> List[str]:
        # Output is a title line followed by tab-indented names:
        #   Preferred networks on en0:
        #           LibraryWiFi
        lines = self.runner.run(
            ['networksetup', '-listpreferredwirelessnetworks', self.wifi_interface]).stdout.splitlines()
        names = [line.strip() for line in lines[1:] if line.strip()]
        return sorted(names, key=str.casefold)

    def preferred_network_secret(self, network_name: str) -> SecretLookup:
        result = self.runner.run(
            ['security', 'find-generic-password', '-D', 'AirPort network password',
             '-a', network_name, '-w'],
            raise_on_error=False)
        if result.succeeded:
            return SecretLookup.found(result.stdout.rstrip('\n'))
        if result.exit_code == KEYCHAIN_ITEM_NOT_FOUND:
            return SecretLookup.not_found()
        if result.exit_code == 1 and 'could not be found' in result.output:
            return SecretLookup.not_found()
        kind = _KEYCHAIN_EXIT_CODES.get(result.exit_code, AccessErrorKind.OTHER)
        return SecretLookup.access_error(
            kind, f"exit code {result.exit_code}: {result.output.strip()}")

    def remove_preferred_network(self, network_name: str) -> None:
        self.runner.run(['sudo', 'networksetup', '-removepreferredwirelessnetwork',
                         self.wifi_interface, network_name])

    # Addresses

    def ip_address(self) -> Optional[str]:
        result = self.runner.run(['ipconfig', 'getifaddr', self.wifi_interface], raise_on_error=False)
        if result.exit_code == 1:
            return None
        if not result.succeeded:
            raise CommandExecutionError.from_result(result)
        return result.stdout.strip() or None

    def mac_address(self) -> Optional[str]:
        output = self.runner.run(['ifconfig', self.wifi_interface], raise_on_error=False).stdout
        match = re.search(r'\bether ([0-9a-fA-F:]{17})', output)
        return match.group(1) if match else None


def _signal_strength(signal_noise: Optional[str]) -> int:
    # e.g. "-59 dBm / -94 dBm"
    if not signal_noise:
        return -100
    match = re.search(r'-?\d+', signal_noise)
    return int(match.group(0)) if match else -100
