"""
Saved connection profile lookup for NetworkManager.

NetworkManager silently creates duplicate profiles for the same SSID
("MySSID", "MySSID 1", ...). Picking the most recently used one keeps
repeated connects from thrashing between duplicates.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from wifiwand.services.command_runner import CommandExecutionError, CommandResult, CommandRunner
from wifiwand.wifi.security import PSK_PARAMETER

logger = logging.getLogger(__name__)

LIST_PROFILES_COMMAND = ['nmcli', '-t', '-f', 'NAME,TIMESTAMP', 'connection', 'show']


def show_secret_command(profile_name: str) -> List[str]:
    return ['nmcli', '--show-secrets', '-g', PSK_PARAMETER, 'connection', 'show', profile_name]


def split_terse_line(line: str) -> List[str]:
    """Split an `nmcli -t` line on unescaped colons, unescaping `\\:` and `\\\\`."""
    fields: List[str] = []
    current: List[str] = []
    chars = iter(line)
    for ch in chars:
        if ch == '\\':
            current.append(next(chars, '\\'))
        elif ch == ':':
            fields.append(''.join(current))
            current = []
        else:
            current.append(ch)
    fields.append(''.join(current))
    return fields


@dataclass(frozen=True)
class NetworkProfile:
    """A saved connection profile."""
    name: str
    last_modified: int = 0
    has_stored_secret: bool = False

    @property
    def last_modified_at(self) -> Optional[datetime]:
        if not self.last_modified:
            return None
        return datetime.fromtimestamp(self.last_modified, tz=timezone.utc)


class ProfileResolver:
    """Finds the best saved profile for an SSID."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def list_profiles(self) -> List[NetworkProfile]:
        """
        All saved profiles, in nmcli's listing order.

        Raises:
            CommandExecutionError: If nmcli cannot list connections
        """
        result = self.runner.run(LIST_PROFILES_COMMAND)
        profiles = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            fields = split_terse_line(line)
            name = fields[0]
            timestamp = fields[1] if len(fields) > 1 else ''
            try:
                last_modified = int(timestamp.strip())
            except ValueError:
                last_modified = 0
            profiles.append(NetworkProfile(name=name, last_modified=last_modified))
        return profiles

    def find_best_profile(self, ssid: str) -> Optional[NetworkProfile]:
        """
        The most recently modified profile whose name starts with `ssid`,
        with `has_stored_secret` filled in.

        Returns:
            The profile, or None if none match or the listing fails
        """
        try:
            profiles = self.list_profiles()
        except CommandExecutionError as e:
            logger.debug(f"Could not list connection profiles: {e}")
            return None

        best: Optional[NetworkProfile] = None
        for profile in profiles:
            if not profile.name.startswith(ssid):
                continue
            # Strictly greater keeps the earliest-listed profile on ties
            if best is None or profile.last_modified > best.last_modified:
                best = profile

        if best is None:
            return None
        secret = self.read_secret(best.name)
        best = dataclasses.replace(
            best, has_stored_secret=secret.succeeded and bool(secret.stdout.strip()))
        logger.debug(f"Best profile for {ssid!r}: {best.name!r}")
        return best

    def read_secret(self, profile_name: str) -> CommandResult:
        """Run the stored-PSK query for a profile; failures are returned, not raised."""
        return self.runner.run(show_secret_command(profile_name), raise_on_error=False)
