"""
Unit tests for NetworkManager profile lookup.
"""

import pytest

from wifiwand.wifi.profiles import (
    LIST_PROFILES_COMMAND,
    NetworkProfile,
    ProfileResolver,
    show_secret_command,
    split_terse_line,
)


class TestSplitTerseLine:
    """Test parsing of `nmcli -t` lines."""

    def test_plain_fields(self):
        assert split_terse_line("CafeNet:1700000000") == ["CafeNet", "1700000000"]

    def test_escaped_colon_stays_in_field(self):
        assert split_terse_line(r"Cafe\:Net:802-11-wireless") == ["Cafe:Net", "802-11-wireless"]

    def test_escaped_backslash(self):
        assert split_terse_line(r"a\\b:c") == ["a\\b", "c"]

    def test_empty_trailing_field(self):
        assert split_terse_line("yes:") == ["yes", ""]


class TestProfileResolver:
    """Test best-profile selection."""

    def test_picks_most_recent_prefix_match(self, runner):
        runner.on(LIST_PROFILES_COMMAND, stdout=(
            "CafeNet:1700000000\n"
            "CafeNet 1:1700000500\n"
            "HomeNet:1700009999\n"))

        profile = ProfileResolver(runner).find_best_profile("CafeNet")

        assert profile == NetworkProfile(name="CafeNet 1", last_modified=1700000500)

    def test_best_profile_reports_stored_secret(self, runner):
        runner.on(LIST_PROFILES_COMMAND, stdout="CafeNet:1700000000\n")
        runner.on(show_secret_command("CafeNet"), stdout="abc\n")

        assert ProfileResolver(runner).find_best_profile("CafeNet").has_stored_secret is True

    @pytest.mark.parametrize("stdout,exit_code", [("\n", 0), ("", 4)])
    def test_best_profile_without_stored_secret(self, runner, stdout, exit_code):
        runner.on(LIST_PROFILES_COMMAND, stdout="CafeNet:1700000000\n")
        runner.on(show_secret_command("CafeNet"), stdout=stdout, exit_code=exit_code)

        assert ProfileResolver(runner).find_best_profile("CafeNet").has_stored_secret is False

    def test_tie_keeps_first_listed(self, runner):
        runner.on(LIST_PROFILES_COMMAND, stdout="CafeNet 1:100\nCafeNet:100\n")

        assert ProfileResolver(runner).find_best_profile("CafeNet").name == "CafeNet 1"

    def test_no_match_returns_none(self, runner):
        runner.on(LIST_PROFILES_COMMAND, stdout="HomeNet:1\n")

        assert ProfileResolver(runner).find_best_profile("CafeNet") is None

    def test_listing_failure_returns_none(self, runner):
        runner.on(LIST_PROFILES_COMMAND, exit_code=8, stderr="Error: NetworkManager is not running.")

        assert ProfileResolver(runner).find_best_profile("CafeNet") is None

    def test_unparseable_timestamp_treated_as_zero(self, runner):
        runner.on(LIST_PROFILES_COMMAND, stdout="CafeNet:\nCafeNet 1:never\n")

        profiles = ProfileResolver(runner).list_profiles()

        assert [p.last_modified for p in profiles] == [0, 0]
        assert profiles[0].last_modified_at is None

    def test_last_modified_at(self):
        profile = NetworkProfile(name="CafeNet", last_modified=1700000000)
        assert profile.last_modified_at.year == 2023
