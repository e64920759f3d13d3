"""
Shared fixtures for wifiwand tests.
FakeCommandRunner stands in for the OS: tests script the output of each
command line and inspect the commands that were run.
"""

from typing import Callable, List, Optional, Sequence, Tuple, Union

import pytest

from wifiwand.services.command_runner import (
    CommandExecutionError,
    CommandResult,
    CommandRunner,
    command_to_string,
)
from wifiwand.wifi.backend import SecretLookup

Response = Union[CommandResult, Callable[[Tuple[str, ...]], CommandResult]]


def result(stdout: str = '', exit_code: int = 0, stderr: str = '') -> CommandResult:
    """Build a CommandResult the way CommandRunner would."""
    output = stdout + stderr
    return CommandResult(command='', output=output, exit_code=exit_code,
                         stdout=stdout, stderr=stderr)


class FakeCommandRunner(CommandRunner):
    """
    Scripted command runner.

    Unscripted commands succeed with empty output. When several scripts
    match a command, the one registered last wins.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[Tuple[str, ...]] = []
        self._scripts: List[Tuple[Callable[[Tuple[str, ...]], bool], List[Response]]] = []

    def on(self, command: Union[Sequence[str], Callable[[Tuple[str, ...]], bool]],
           stdout: str = '', exit_code: int = 0, stderr: str = '') -> 'FakeCommandRunner':
        return self.on_sequence(command, [result(stdout, exit_code, stderr)])

    def on_sequence(self, command, responses: Sequence[Response]) -> 'FakeCommandRunner':
        """Answer successive runs with successive responses; the last one repeats."""
        if callable(command):
            matcher = command
        else:
            expected = tuple(command)
            matcher = lambda argv: argv == expected  # noqa: E731
        self._scripts.append((matcher, list(responses)))
        return self

    def run(self, command, raise_on_error: bool = True) -> CommandResult:
        argv = ('sh', '-c', command) if isinstance(command, str) else tuple(str(a) for a in command)
        self.calls.append(argv)

        response: Response = result()
        for matcher, responses in reversed(self._scripts):
            if matcher(argv):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                break
        if callable(response):
            response = response(argv)

        command_result = CommandResult(
            command=command_to_string(command),
            output=response.output,
            exit_code=response.exit_code,
            stdout=response.stdout,
            stderr=response.stderr,
        )
        if raise_on_error and not command_result.succeeded:
            raise CommandExecutionError.from_result(command_result)
        return command_result

    def ran(self, command: Sequence[str]) -> bool:
        return tuple(command) in self.calls

    def calls_starting_with(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[:len(prefix)] == prefix]


class FakeBackend:
    """
    In-memory backend with a togglable radio and a saved-network table.
    Used by model and orchestration tests that do not care about OS commands.
    """

    os_id = 'fake'

    def __init__(self, radio_on: bool = True, connected: Optional[str] = None,
                 saved: Optional[dict] = None, visible: Optional[List[str]] = None):
        self.wifi_interface = 'wlan0'
        self.radio_on = radio_on
        self.connected = connected
        self.saved = dict(saved or {})
        self.visible = list(visible or [])
        self.connect_calls: List[Tuple[str, Optional[str]]] = []
        self.radio_calls: List[bool] = []
        self.disconnect_calls = 0
        self.secret_lookups: dict = {}
        # Network the next connect() actually joins; defaults to the requested one
        self.join_override: Optional[str] = None
        self.connect_error: Optional[Exception] = None

    def wifi_on(self) -> bool:
        return self.radio_on

    def set_radio_power(self, on: bool) -> None:
        self.radio_calls.append(on)
        self.radio_on = on
        if not on:
            self.connected = None

    def connected_network_name(self):
        return self.connected if self.radio_on else None

    def connect(self, ssid, password=None):
        self.connect_calls.append((ssid, password))
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = self.join_override or ssid

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = None

    def preferred_networks(self):
        return sorted(self.saved)

    def preferred_network_secret(self, name):
        if name in self.secret_lookups:
            return self.secret_lookups[name]
        secret = self.saved.get(name)
        return SecretLookup.found(secret) if secret else SecretLookup.not_found()

    def remove_preferred_network(self, name):
        self.saved.pop(name, None)

    def available_network_names(self):
        return list(self.visible)

    def ip_address(self):
        return '192.168.1.20' if self.connected else None

    def mac_address(self):
        return 'aa:bb:cc:dd:ee:ff'

    def connection_security_type(self):
        return None


@pytest.fixture
def runner():
    return FakeCommandRunner()


@pytest.fixture
def fake_backend():
    return FakeBackend()
