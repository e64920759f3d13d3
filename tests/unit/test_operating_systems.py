"""
Unit tests for OS detection and the model factory.
"""

import pytest

from wifiwand.config import WifiWandConfig
from wifiwand.errors import MultipleOSMatchError, NoSupportedOSError
from wifiwand.model import WifiModel
from wifiwand.operating_systems import (
    BaseOs,
    MacOs,
    Ubuntu,
    create_model,
    detect_current_os,
    os_for_id,
)
from wifiwand.wifi.mac_backend import MacOsBackend
from wifiwand.wifi.nm_backend import NetworkManagerBackend


class StaticOs(BaseOs):
    def __init__(self, name, matches):
        self.display_name = name
        self.matches = matches

    def is_current_os(self):
        return self.matches


class TestUbuntuDetection:
    """Test /etc/os-release and /proc/version checks."""

    def write(self, tmp_path, os_release="", proc_version=""):
        release = tmp_path / "os-release"
        release.write_text(os_release)
        version = tmp_path / "version"
        version.write_text(proc_version)
        return Ubuntu(str(release), str(version))

    def test_ubuntu_id(self, tmp_path):
        assert self.write(tmp_path, 'NAME="Ubuntu"\nID=ubuntu\n').is_current_os()

    def test_ubuntu_derivative(self, tmp_path):
        os_ = self.write(tmp_path, 'ID=pop\nID_LIKE="ubuntu debian"\n')
        assert os_.is_current_os()

    def test_proc_version(self, tmp_path):
        os_ = self.write(tmp_path, 'ID=custom\n',
                         'Linux version 6.5.0-14-generic (buildd@lcy02) (Ubuntu 13.2.0)')
        assert os_.is_current_os()

    def test_other_linux(self, tmp_path):
        os_ = self.write(tmp_path, 'ID=fedora\n', 'Linux version 6.6.0 (Red Hat 13.2.1)')
        assert not os_.is_current_os()

    def test_missing_files(self, tmp_path):
        assert not Ubuntu(str(tmp_path / "nope"), str(tmp_path / "nope2")).is_current_os()


class TestBaseOs:
    def test_detection_must_be_implemented(self):
        with pytest.raises(TypeError):
            BaseOs()


class TestMacDetection:
    def test_darwin(self):
        assert MacOs('darwin').is_current_os()
        assert not MacOs('linux').is_current_os()


class TestDetectCurrentOs:
    """Test choosing among candidates."""

    def test_single_match(self):
        mac = StaticOs("macOS", True)
        assert detect_current_os([mac, StaticOs("Ubuntu", False)]) is mac

    def test_no_match(self):
        assert detect_current_os([StaticOs("macOS", False)]) is None

    def test_multiple_matches(self):
        with pytest.raises(MultipleOSMatchError) as exc_info:
            detect_current_os([StaticOs("macOS", True), StaticOs("Ubuntu", True)])

        assert exc_info.value.matching_os_names == ["macOS", "Ubuntu"]

    def test_os_for_id(self):
        assert isinstance(os_for_id('mac'), MacOs)
        assert isinstance(os_for_id('ubuntu'), Ubuntu)
        with pytest.raises(NoSupportedOSError):
            os_for_id('windows')


class TestCreateModel:
    """Test building a model."""

    def test_builds_ubuntu_model_from_config(self, runner):
        runner.on(('iw', 'dev'), stdout="phy#0\n\tInterface wlan0\n")

        model = create_model(WifiWandConfig(os_id='ubuntu'), runner=runner)

        assert isinstance(model, WifiModel)
        assert isinstance(model.backend, NetworkManagerBackend)
        assert model.wifi_interface == 'wlan0'
        assert model.config.os_id == 'ubuntu'
        assert model.config.wifi_interface == 'wlan0'

    def test_builds_mac_model_with_requested_interface(self, runner):
        runner.on(('sw_vers', '-productVersion'), stdout="14.4\n")

        model = create_model(WifiWandConfig(os_id='mac', wifi_interface='en1'), runner=runner)

        assert isinstance(model.backend, MacOsBackend)
        assert model.wifi_interface == 'en1'

    def test_no_supported_os(self, runner, monkeypatch):
        monkeypatch.setattr('wifiwand.operating_systems.detect_current_os', lambda: None)

        with pytest.raises(NoSupportedOSError):
            create_model(WifiWandConfig(), runner=runner)
