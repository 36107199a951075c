"""
Unit tests for shuttlebar/tunnel/target.py
"""

import pytest

from shuttlebar.tunnel.target import TunnelTarget, build_command


@pytest.mark.unit
class TestTunnelTarget:
    """Tests for target validation and argument building."""

    def test_default_arguments(self):
        target = TunnelTarget(remote="alice@10.0.0.5")

        assert target.arguments() == [
            "-Hr",
            "alice@10.0.0.5",
            "0.0.0.0/0",
            "--dns",
            "--no-latency-control",
        ]

    def test_flags_follow_target_options(self):
        target = TunnelTarget(
            remote="alice@10.0.0.5",
            subnet="10.0.0.0/8",
            dns=False,
            latency_control=True,
            auto_hosts=False,
        )

        assert target.arguments() == ["-r", "alice@10.0.0.5", "10.0.0.0/8"]

    def test_build_command_prepends_program(self):
        target = TunnelTarget(remote="alice@10.0.0.5")

        command = build_command("/opt/homebrew/bin/sshuttle", target)

        assert command[0] == "/opt/homebrew/bin/sshuttle"
        assert command[1:] == target.arguments()

    def test_ipv6_subnet_accepted(self):
        target = TunnelTarget(remote="alice@example.com", subnet="::/0")
        assert target.subnet == "::/0"

    @pytest.mark.parametrize("remote", ["", "   ", "alice @host"])
    def test_invalid_remote_rejected(self, remote):
        with pytest.raises(ValueError):
            TunnelTarget(remote=remote)

    def test_invalid_subnet_rejected(self):
        with pytest.raises(ValueError, match="Invalid destination subnet"):
            TunnelTarget(remote="alice@10.0.0.5", subnet="10.0.0.0/99")

    def test_targets_are_immutable(self):
        target = TunnelTarget(remote="alice@10.0.0.5")

        with pytest.raises(AttributeError):
            target.remote = "bob@10.0.0.6"

    def test_with_changes_validates(self):
        target = TunnelTarget(remote="alice@10.0.0.5")

        changed = target.with_changes(remote="bob@10.0.0.6")
        assert changed.remote == "bob@10.0.0.6"
        assert target.remote == "alice@10.0.0.5"

        with pytest.raises(ValueError):
            target.with_changes(subnet="not-a-subnet")
