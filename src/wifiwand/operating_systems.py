"""
Operating system detection and model construction.
"""

import dataclasses
import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from wifiwand.config import WifiWandConfig
from wifiwand.errors import MultipleOSMatchError, NoSupportedOSError
from wifiwand.logging import configure_logging
from wifiwand.model import WifiModel
from wifiwand.services.command_runner import CommandRunner
from wifiwand.wifi.backend import WifiBackend
from wifiwand.wifi.mac_backend import MacOsBackend
from wifiwand.wifi.nm_backend import NetworkManagerBackend

logger = logging.getLogger(__name__)


class BaseOs(ABC):
    """An operating system wifiwand can drive."""

    os_id = ""
    display_name = ""
    backend_class = WifiBackend

    @abstractmethod
    def is_current_os(self) -> bool:
        """True when running on this operating system."""
        pass

    def create_backend(self, runner: CommandRunner) -> WifiBackend:
        return self.backend_class(runner)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MacOs(BaseOs):
    os_id = 'mac'
    display_name = 'macOS'
    backend_class = MacOsBackend

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform

    def is_current_os(self) -> bool:
        return (self.platform or sys.platform) == 'darwin'


class Ubuntu(BaseOs):
    os_id = 'ubuntu'
    display_name = 'Ubuntu'
    backend_class = NetworkManagerBackend

    def __init__(self, os_release_path: str = '/etc/os-release',
                 proc_version_path: str = '/proc/version'):
        self.os_release_path = Path(os_release_path)
        self.proc_version_path = Path(proc_version_path)

    def is_current_os(self) -> bool:
        release = _read_os_release(self.os_release_path)
        if release.get('ID', '').lower() == 'ubuntu':
            return True
        if 'ubuntu' in release.get('ID_LIKE', '').lower().split():
            return True
        try:
            return 'ubuntu' in self.proc_version_path.read_text().lower()
        except OSError:
            return False


def _read_os_release(path: Path) -> dict:
    try:
        text = path.read_text()
    except OSError:
        return {}
    values = {}
    for line in text.splitlines():
        key, sep, value = line.partition('=')
        if sep:
            values[key.strip()] = value.strip().strip('"\'')
    return values


def supported_operating_systems() -> List[BaseOs]:
    return [MacOs(), Ubuntu()]


def detect_current_os(candidates: Optional[Sequence[BaseOs]] = None) -> Optional[BaseOs]:
    """
    The single operating system matching this host, or None.

    Raises:
        MultipleOSMatchError: If more than one candidate matches
    """
    candidates = supported_operating_systems() if candidates is None else candidates
    matches = [os_ for os_ in candidates if os_.is_current_os()]
    if len(matches) > 1:
        raise MultipleOSMatchError([os_.display_name for os_ in matches])
    return matches[0] if matches else None


def os_for_id(os_id: str) -> BaseOs:
    for os_ in supported_operating_systems():
        if os_.os_id == os_id:
            return os_
    raise NoSupportedOSError()


def create_model(config: Optional[WifiWandConfig] = None,
                 runner: Optional[CommandRunner] = None) -> WifiModel:
    """
    Detect the OS, build and initialize its backend, and wrap it in a WifiModel.

    Args:
        config: Settings; loaded from the config file when None
        runner: Command runner to share with the backend

    Raises:
        NoSupportedOSError: If no supported OS is detected
        CommandNotFoundError, UnsupportedSystemError: If OS preconditions fail
        InvalidInterfaceError, WifiInterfaceError: If no usable WiFi interface is found
    """
    config = config or WifiWandConfig.load()
    if config.verbose or config.log_file:
        configure_logging(log_level='DEBUG' if config.verbose else config.log_level,
                          log_file=config.log_file)

    os_ = os_for_id(config.os_id) if config.os_id else detect_current_os()
    if os_ is None:
        raise NoSupportedOSError()
    logger.info(f"Using {os_.display_name} backend")

    runner = runner or CommandRunner(verbose=config.verbose)
    backend = os_.create_backend(runner)
    backend.init_wifi_interface(config.wifi_interface)

    config = dataclasses.replace(config, os_id=os_.os_id,
                                 wifi_interface=backend.wifi_interface)
    return WifiModel(backend, config)
