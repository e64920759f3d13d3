"""
WiFi backend interface for abstraction over NetworkManager / macOS tooling.
Allows test doubles to be injected in place of the OS-specific backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Type

from wifiwand.errors import (
    InvalidInterfaceError,
    KeychainAccessCancelledError,
    KeychainAccessDeniedError,
    KeychainError,
    KeychainNonInteractiveError,
    WifiInterfaceError,
)
from wifiwand.services.command_runner import CommandRunner
from wifiwand.wifi.security import SecurityType


class WifiNetwork:
    """Represents a network visible in a scan."""

    def __init__(
            self,
            ssid: str,
            signal_strength: int,
            security: SecurityType = SecurityType.UNKNOWN):
        """
        Args:
            ssid: Network SSID
            signal_strength: Signal strength, larger is stronger (backend-dependent scale)
            security: Classified security type
        """
        self.ssid = ssid
        self.signal_strength = signal_strength
        self.security = security

    def __repr__(self) -> str:
        return (f"WifiNetwork(ssid={self.ssid!r}, strength={self.signal_strength}, "
                f"security={self.security.value!r})")


class SecretStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ACCESS_ERROR = "access_error"


class AccessErrorKind(Enum):
    DENIED = "denied"
    CANCELLED = "cancelled"
    NON_INTERACTIVE = "non_interactive"
    OTHER = "other"


_ACCESS_ERRORS: Dict[AccessErrorKind, Type[KeychainError]] = {
    AccessErrorKind.DENIED: KeychainAccessDeniedError,
    AccessErrorKind.CANCELLED: KeychainAccessCancelledError,
    AccessErrorKind.NON_INTERACTIVE: KeychainNonInteractiveError,
    AccessErrorKind.OTHER: KeychainError,
}


@dataclass(frozen=True)
class SecretLookup:
    """
    Result of a credential store query.

    "Not found" is an ordinary outcome rather than an error, so callers must
    look at `status` instead of catching exceptions.
    """
    status: SecretStatus
    secret: Optional[str] = None
    error_kind: Optional[AccessErrorKind] = None
    detail: Optional[str] = None

    @classmethod
    def found(cls, secret: str) -> 'SecretLookup':
        return cls(SecretStatus.FOUND, secret=secret)

    @classmethod
    def not_found(cls) -> 'SecretLookup':
        return cls(SecretStatus.NOT_FOUND)

    @classmethod
    def access_error(cls, kind: AccessErrorKind,
                     detail: Optional[str] = None) -> 'SecretLookup':
        return cls(SecretStatus.ACCESS_ERROR, error_kind=kind, detail=detail)

    @property
    def is_found(self) -> bool:
        return self.status == SecretStatus.FOUND

    def raise_for_error(self, network_name: str) -> None:
        if self.status == SecretStatus.ACCESS_ERROR:
            error_class = _ACCESS_ERRORS.get(self.error_kind, KeychainError)
            raise error_class(network_name, self.detail)

    def value_or_raise(self, network_name: str) -> Optional[str]:
        """The secret, None when not found, or the typed keychain error."""
        self.raise_for_error(network_name)
        return self.secret


class WifiBackend(ABC):
    """Abstract base class for OS-specific WiFi backends."""

    os_id: str = ""

    def __init__(self, runner: Optional[CommandRunner] = None,
                 wifi_interface: Optional[str] = None):
        self.runner = runner or CommandRunner()
        self.wifi_interface = wifi_interface

    def init_wifi_interface(self, requested: Optional[str] = None) -> str:
        """
        Validate OS preconditions and settle on the WiFi interface to use.

        Raises:
            InvalidInterfaceError: If `requested` is not a WiFi interface
            WifiInterfaceError: If no WiFi interface can be detected
        """
        self.validate_preconditions()
        if requested:
            if not self.is_wifi_interface(requested):
                raise InvalidInterfaceError(requested)
            self.wifi_interface = requested
        else:
            self.wifi_interface = self.detect_wifi_interface()
        if not self.wifi_interface:
            raise WifiInterfaceError()
        return self.wifi_interface

    @abstractmethod
    def validate_preconditions(self) -> None:
        """
        Check that the OS tools this backend needs are present.

        Raises:
            CommandNotFoundError or UnsupportedSystemError
        """

    @abstractmethod
    def detect_wifi_interface(self) -> Optional[str]:
        """Return the first WiFi interface name, e.g. "wlp0s20f3" or "en0"."""

    @abstractmethod
    def is_wifi_interface(self, interface: str) -> bool:
        """Return True if `interface` is a WiFi interface."""

    @abstractmethod
    def wifi_on(self) -> bool:
        """Query the radio power state fresh from the OS."""

    @abstractmethod
    def set_radio_power(self, on: bool) -> None:
        """Issue the OS command to power the radio on or off; does not wait."""

    @abstractmethod
    def connected_network_name(self) -> Optional[str]:
        """SSID of the associated network, or None."""

    @abstractmethod
    def connect(self, ssid: str, password: Optional[str] = None) -> None:
        """
        Run the OS-level connection sequence.

        Raises:
            NetworkNotFoundError, NetworkAuthenticationError, CommandExecutionError
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Disassociate from the current network; succeeds when already disconnected."""

    @abstractmethod
    def available_networks(self) -> List[WifiNetwork]:
        """Networks currently visible to the radio."""

    @abstractmethod
    def preferred_networks(self) -> List[str]:
        """Names of saved networks, sorted."""

    @abstractmethod
    def preferred_network_secret(self, network_name: str) -> SecretLookup:
        """Query the OS credential store for a saved network's secret."""

    @abstractmethod
    def remove_preferred_network(self, network_name: str) -> None:
        """Delete a saved network."""

    @abstractmethod
    def ip_address(self) -> Optional[str]:
        """IPv4 address of the WiFi interface, or None."""

    @abstractmethod
    def mac_address(self) -> Optional[str]:
        """Hardware address of the WiFi interface, or None."""

    @abstractmethod
    def connection_security_type(self) -> Optional[SecurityType]:
        """Security of the connected network, or None when not connected."""

    def available_network_names(self) -> List[str]:
        """Visible network names, strongest signal first, without duplicates."""
        networks = sorted(self.available_networks(),
                          key=lambda n: n.signal_strength, reverse=True)
        names: List[str] = []
        for network in networks:
            if network.ssid and network.ssid not in names:
                names.append(network.ssid)
        return names
