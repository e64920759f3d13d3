"""
Integration tests for the full connect flow.
A WifiModel built by create_model drives the NetworkManager backend against
a simulated nmcli that keeps radio, association and profile state.
"""

import pytest

from conftest import FakeCommandRunner, result
from wifiwand.config import WifiWandConfig
from wifiwand.errors import NetworkConnectionError, NetworkNotFoundError
from wifiwand.operating_systems import create_model
from wifiwand.wifi.profiles import LIST_PROFILES_COMMAND
from wifiwand.wifi.security import PSK_PARAMETER


class SimulatedNetworkManager:
    """Answers nmcli commands from in-memory state."""

    def __init__(self, runner: FakeCommandRunner, radio_on=True, connected=None,
                 profiles=None, visible=None):
        self.radio_on = radio_on
        self.connected = connected
        # profile name -> (timestamp, secret)
        self.profiles = dict(profiles or {})
        # ssid -> security
        self.visible = dict(visible or {"CafeNet": "WPA2", "HomeNet": "WPA2"})
        # Network a connection attempt actually lands on, if not the requested one
        self.land_on = None

        runner.on(('iw', 'dev'), stdout="phy#0\n\tInterface wlan0\n")
        runner.on_sequence(('nmcli', 'radio', 'wifi'),
                           [lambda argv: result("enabled\n" if self.radio_on else "disabled\n")])
        runner.on_sequence(('nmcli', 'radio', 'wifi', 'on'), [lambda argv: self._power(True)])
        runner.on_sequence(('nmcli', '-t', '-f', 'ACTIVE,SSID', 'device', 'wifi'),
                           [lambda argv: result(f"yes:{self.connected}\n" if self.connected else "")])
        runner.on_sequence(LIST_PROFILES_COMMAND, [lambda argv: result(
            "".join(f"{name}:{ts}\n" for name, (ts, _) in self.profiles.items()))])
        runner.on_sequence(('nmcli', '-t', '-f', 'NAME,TYPE', 'connection', 'show'), [
            lambda argv: result("".join(f"{name}:802-11-wireless\n" for name in self.profiles))])
        runner.on_sequence(('nmcli', '-t', '-f', 'SSID,SECURITY', 'dev', 'wifi', 'list'), [
            lambda argv: result("".join(f"{ssid}:{sec}\n" for ssid, sec in self.visible.items()))])
        runner.on_sequence(lambda argv: argv[:2] == ('nmcli', '--show-secrets'),
                           [self._show_secret])
        runner.on_sequence(lambda argv: argv[:4] == ('nmcli', 'dev', 'wifi', 'connect'),
                           [self._device_connect])
        runner.on_sequence(lambda argv: argv[:3] == ('nmcli', 'connection', 'up'),
                           [self._connection_up])
        runner.on_sequence(lambda argv: argv[:3] == ('nmcli', 'connection', 'modify'),
                           [self._connection_modify])

    def _power(self, on):
        self.radio_on = on
        return result()

    def _show_secret(self, argv):
        name = argv[-1]
        if name not in self.profiles:
            return result(exit_code=10, stderr=f"Error: {name} - no such connection profile.\n")
        return result(f"{self.profiles[name][1] or ''}\n")

    def _device_connect(self, argv):
        ssid = argv[4]
        if ssid not in self.visible:
            return result(exit_code=10, stderr=f"Error: No network with SSID '{ssid}' found.\n")
        password = argv[6] if len(argv) > 6 else None
        self.profiles[ssid] = (1700001000, password)
        self.connected = self.land_on or ssid
        return result("Device 'wlan0' successfully activated.\n")

    def _connection_up(self, argv):
        profile = argv[3]
        ssid = next((s for s in self.visible if profile.startswith(s)), profile)
        self.connected = self.land_on or ssid
        return result("Connection successfully activated\n")

    def _connection_modify(self, argv):
        name, secret = argv[3], argv[5]
        self.profiles[name] = (self.profiles[name][0], secret)
        return result()


def build(runner, **state):
    world = SimulatedNetworkManager(runner, **state)
    config = WifiWandConfig(os_id='ubuntu', poll_interval_secs=0.01, wifi_toggle_timeout_secs=0.5)
    return create_model(config, runner=runner), world


class TestConnectFlow:
    """Test connect end to end through the NetworkManager backend."""

    def test_new_network_with_password_connects_directly(self, runner):
        model, world = build(runner)

        model.connect("CafeNet", "secret")

        assert world.connected == "CafeNet"
        assert runner.ran(('nmcli', 'dev', 'wifi', 'connect', 'CafeNet', 'password', 'secret'))
        assert model.last_connection_used_saved_password() is False

    def test_saved_network_uses_stored_secret(self, runner):
        model, world = build(runner, profiles={"CafeNet": (1700000000, "abc")})

        model.connect("CafeNet")

        assert runner.ran(('nmcli', 'connection', 'up', 'CafeNet'))
        assert not runner.calls_starting_with('nmcli', 'connection', 'modify')
        assert model.last_connection_used_saved_password() is True
        assert model.connected_network_name() == "CafeNet"

    def test_changed_password_updates_newest_duplicate_profile(self, runner):
        model, world = build(runner, profiles={
            "CafeNet": (1700000000, "old"),
            "CafeNet 1": (1700000500, "old"),
        })

        model.connect("CafeNet", "new")

        assert runner.ran(('nmcli', 'connection', 'modify', 'CafeNet 1', PSK_PARAMETER, 'new'))
        assert world.profiles["CafeNet 1"] == (1700000500, "new")
        assert world.profiles["CafeNet"] == (1700000000, "old")
        assert world.connected == "CafeNet"

    def test_radio_turned_on_before_connecting(self, runner):
        model, world = build(runner, radio_on=False)

        model.connect("HomeNet", "pw")

        assert world.radio_on is True
        assert world.connected == "HomeNet"
        on_index = runner.calls.index(('nmcli', 'radio', 'wifi', 'on'))
        connect_index = runner.calls.index(('nmcli', 'dev', 'wifi', 'connect', 'HomeNet', 'password', 'pw'))
        assert on_index < connect_index

    def test_already_connected_issues_no_connect_commands(self, runner):
        model, world = build(runner, connected="CafeNet")
        runner.calls.clear()

        model.connect("CafeNet")

        assert not runner.calls_starting_with('nmcli', 'dev', 'wifi', 'connect')
        assert not runner.calls_starting_with('nmcli', 'connection', 'up')

    def test_unknown_network(self, runner):
        model, world = build(runner)

        with pytest.raises(NetworkNotFoundError):
            model.connect("Nowhere")

    def test_landing_on_another_network_is_an_error(self, runner):
        model, world = build(runner, profiles={"CafeNet": (1700000000, "abc")})
        world.land_on = "HomeNet"

        with pytest.raises(NetworkConnectionError) as exc_info:
            model.connect("CafeNet")

        assert exc_info.value.actual == "HomeNet"

    def test_disconnect_twice(self, runner):
        model, world = build(runner, connected="CafeNet")
        runner.on(('nmcli', 'dev', 'disconnect', 'wlan0'), exit_code=6,
                  stderr="Error: Device 'wlan0' is not active.\n")

        model.disconnect()
        model.disconnect()
