"""
Tunnel target description and the sshuttle launch argument template.
"""

import ipaddress
from dataclasses import dataclass, replace
from typing import List

REMOTE_FLAG = "-r"
AUTO_HOSTS_FLAG = "-H"
DNS_FLAG = "--dns"
NO_LATENCY_CONTROL_FLAG = "--no-latency-control"


@dataclass(frozen=True)
class TunnelTarget:
    """Remote endpoint and routing parameters passed to sshuttle."""

    remote: str
    subnet: str = "0.0.0.0/0"
    dns: bool = True
    latency_control: bool = False
    auto_hosts: bool = True

    def __post_init__(self):
        if not self.remote or not self.remote.strip():
            raise ValueError("Tunnel remote must not be empty")
        if any(c.isspace() for c in self.remote):
            raise ValueError(f"Tunnel remote contains whitespace: {self.remote!r}")
        try:
            ipaddress.ip_network(self.subnet, strict=False)
        except ValueError as e:
            raise ValueError(f"Invalid destination subnet {self.subnet!r}: {e}") from e

    def with_changes(self, **changes) -> "TunnelTarget":
        """Return a copy of this target with some fields replaced."""
        return replace(self, **changes)

    def arguments(self) -> List[str]:
        """sshuttle arguments for this target, without the program path."""
        host_flag = "-Hr" if self.auto_hosts else REMOTE_FLAG
        args = [host_flag, self.remote, self.subnet]
        if self.dns:
            args.append(DNS_FLAG)
        if not self.latency_control:
            args.append(NO_LATENCY_CONTROL_FLAG)
        return args

    def __str__(self):
        return f"{self.remote} -> {self.subnet}"


def build_command(program_path, target: TunnelTarget) -> List[str]:
    """Full argv used to launch sshuttle for a target."""
    return [str(program_path)] + target.arguments()
