"""
Error taxonomy for wifiwand.
Every failure a caller can see is one of these types; raw exit codes from
OS tools are translated by the backends before they get here.
"""

from typing import Iterable, List, Optional


class WifiWandError(RuntimeError):
    """Base class for all wifiwand errors."""


# Network connection errors

class NetworkNotFoundError(WifiWandError):
    """The requested network could not be found or activated."""

    def __init__(self, network_name: str,
                 available_networks: Optional[Iterable[str]] = None):
        self.network_name = network_name
        self.available_networks: List[str] = list(available_networks or [])
        msg = f"Network '{network_name}' not found"
        if self.available_networks:
            msg += f". Available networks: {', '.join(self.available_networks)}"
        else:
            msg += ". No networks are currently available"
        super().__init__(msg)


class NetworkConnectionError(WifiWandError):
    """The post-connect check found a different network, or none."""

    def __init__(self, requested: str, actual: Optional[str] = None,
                 password_supplied: bool = False):
        self.requested = requested
        self.actual = actual
        if actual:
            detail = f"connected to '{actual}' instead"
        else:
            detail = "unable to connect to any network"
        hint = ("Did you provide the correct password?" if password_supplied
                else "Did you need to provide a password?")
        super().__init__(
            f"Failed to connect to network '{requested}': {detail}. {hint}")


class NetworkAuthenticationError(WifiWandError):
    """The OS rejected the credentials for a network."""

    def __init__(self, network_name: str, reason: Optional[str] = None):
        self.network_name = network_name
        self.reason = reason
        msg = f"Authentication failed for network '{network_name}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# WiFi hardware errors

class WifiInterfaceError(WifiWandError):
    def __init__(self, interface: Optional[str] = None):
        self.interface = interface
        msg = (f"WiFi interface '{interface}' not found" if interface
               else "No WiFi interface found")
        super().__init__(
            msg + ". Ensure WiFi hardware is present and drivers are installed")


class InvalidInterfaceError(WifiWandError):
    def __init__(self, interface: str):
        self.interface = interface
        super().__init__(f"'{interface}' is not a valid WiFi interface")


class WifiEnableError(WifiWandError):
    def __init__(self):
        super().__init__("WiFi could not be enabled. Check hardware and permissions")


class WifiDisableError(WifiWandError):
    def __init__(self):
        super().__init__("WiFi could not be disabled. Check permissions")


# Input validation errors

class InvalidIPAddressError(WifiWandError):
    def __init__(self, invalid_addresses):
        if isinstance(invalid_addresses, str):
            invalid_addresses = [invalid_addresses]
        self.invalid_addresses = list(invalid_addresses)
        super().__init__(
            f"Invalid IP address(es): {', '.join(self.invalid_addresses)}")


class InvalidNetworkNameError(WifiWandError):
    def __init__(self, network_name: Optional[str] = ""):
        self.network_name = network_name or ""
        super().__init__(
            f"Invalid network name: '{self.network_name}'. "
            "Network name cannot be empty")


# System / environment errors

class UnsupportedSystemError(WifiWandError):
    def __init__(self, required_version: Optional[str] = None,
                 current_version: Optional[str] = None):
        self.required_version = required_version
        self.current_version = current_version
        msg = "Unsupported system"
        if required_version and current_version:
            msg += (f". Requires {required_version} or later, "
                    f"found {current_version}")
        super().__init__(msg)


class CommandNotFoundError(WifiWandError):
    def __init__(self, commands):
        if isinstance(commands, str):
            commands = [commands]
        self.commands = list(commands)
        super().__init__(
            f"Missing required system command(s): {', '.join(self.commands)}")


# Credential store errors

class KeychainError(WifiWandError):
    """Generic failure reading a secret from the OS credential store."""

    def __init__(self, network_name: str, detail: Optional[str] = None,
                 message: Optional[str] = None):
        self.network_name = network_name
        self.detail = detail
        if message is None:
            message = f"Keychain error reading password for network '{network_name}'"
            if detail:
                message += f": {detail}"
        super().__init__(message)


class KeychainAccessDeniedError(KeychainError):
    def __init__(self, network_name: str, detail: Optional[str] = None):
        super().__init__(
            network_name, detail,
            f"Keychain access denied for network '{network_name}'. "
            "Please grant access when prompted")


class KeychainAccessCancelledError(KeychainError):
    def __init__(self, network_name: str, detail: Optional[str] = None):
        super().__init__(
            network_name, detail,
            f"Keychain access cancelled for network '{network_name}'")


class KeychainNonInteractiveError(KeychainError):
    def __init__(self, network_name: str, detail: Optional[str] = None):
        super().__init__(
            network_name, detail,
            f"Cannot access keychain for network '{network_name}' "
            "in non-interactive environment")


# OS detection errors

class MultipleOSMatchError(WifiWandError):
    def __init__(self, matching_os_names):
        self.matching_os_names = list(matching_os_names)
        super().__init__(
            f"Multiple OS matches found: {', '.join(self.matching_os_names)}. "
            "This should not happen")


class NoSupportedOSError(WifiWandError):
    def __init__(self):
        super().__init__(
            "No supported operating system detected. "
            "WifiWand supports macOS and Ubuntu Linux")


class PreferredNetworkNotFoundError(WifiWandError):
    def __init__(self, network_name: str):
        self.network_name = network_name
        super().__init__(f"Network '{network_name}' not in preferred networks list")


# Waiting

class WaitTimeoutError(WifiWandError):
    def __init__(self, target_status, timeout_secs: float):
        self.target_status = target_status
        self.timeout_secs = timeout_secs
        super().__init__(
            f"Timed out after {timeout_secs} seconds waiting for "
            f"status '{target_status}'")


class WaitCancelledError(WifiWandError):
    def __init__(self, target_status):
        self.target_status = target_status
        super().__init__(f"Wait for status '{target_status}' was cancelled")
