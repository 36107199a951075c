import signal
import sys
from threading import Event

import click
import toml

from . import config
from .external.sshuttle import find_sshuttle_binary, get_sshuttle_version, resolve_program_path
from .tunnel import NoticeKind, SupervisorListener, TunnelSupervisor, TunnelTarget


def signal_handler(signum, frame):
    """Handle interrupt signals gracefully."""
    signal_name = signal.Signals(signum).name
    click.echo(f"\n\nReceived {signal_name}. Exiting gracefully...")
    sys.exit(0)


signal.signal(signal.SIGINT, signal_handler)  # Ctrl+C
signal.signal(signal.SIGTERM, signal_handler)  # Termination signal


class OrderedGroup(click.Group):
    """Custom Click group that preserves command order."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


@click.group(cls=OrderedGroup)
def cli():
    """
    ShuttleBar - sshuttle VPN controller for the macOS menu bar.

    ShuttleBar starts sshuttle for your configured target, restarts it when
    the connection drops unexpectedly, and tells you what happened through
    desktop notifications.
    """
    pass


@cli.command()
@click.option("--debug", is_flag=True, help="Enable verbose debug logging.")
@click.option("--autostart", is_flag=True, help="Start the VPN as soon as the app launches.")
def run(debug, autostart):
    """
    Run the menu bar app.

    Adds an sshuttle item to the status bar with Start VPN, Stop VPN and
    Set Target… entries. The title shows 🟢 while the tunnel is up.
    """
    from .app import main

    main(debug=debug, autostart=autostart)


class _EchoListener(SupervisorListener):
    """Prints supervisor events for the foreground connect command."""

    def __init__(self):
        self.finished = Event()
        self.failed = False

    def on_state_changed(self, running):
        state = click.style("up", fg="green") if running else click.style("down", fg="yellow")
        click.echo(f"[shuttlebar] tunnel {state}")

    def on_output_line(self, text):
        click.echo(f"sshuttle: {text.strip()}")

    def on_notice(self, notice):
        if notice.kind in (NoticeKind.SPAWN_FAILED, NoticeKind.GAVE_UP):
            click.echo(click.style(f"[shuttlebar] {notice.message}", fg="red"), err=True)
            self.failed = True
            self.finished.set()
        elif notice.kind is NoticeKind.TERMINATION_TIMEOUT:
            click.echo(click.style(f"[shuttlebar] {notice.message}", fg="red"), err=True)
        else:
            click.echo(f"[shuttlebar] {notice.message}")
            if notice.kind is NoticeKind.STOPPED_BY_USER:
                self.finished.set()


@cli.command()
@click.option("--remote", default=None, help="Override the configured user@host.")
@click.option("--subnet", default=None, help="Override the configured destination subnet.")
@click.option("--retries", type=int, default=None, help="Override the configured retry budget.")
@click.option("--debug", is_flag=True, help="Enable verbose debug logging.")
def connect(remote, subnet, retries, debug):
    """
    Run sshuttle in the foreground under supervision.

    Output from sshuttle is printed as it arrives. Unexpected exits are
    retried with the configured delay; press Ctrl+C to stop the tunnel.

    Examples:
      shuttlebar connect
      shuttlebar connect --remote alice@10.0.0.5 --subnet 10.0.0.0/8
    """
    from .logging_config import setup_logging

    setup_logging(debug=debug, force_reinit=True)

    cfg = config.load_config()
    settings = config.settings_from_config(cfg)

    changes = {}
    if remote:
        changes["remote"] = remote
    if subnet:
        changes["subnet"] = subnet
    try:
        target = config.target_from_config(cfg).with_changes(**changes)
    except ValueError as e:
        click.echo(click.style(f"Invalid target: {e}", fg="red"), err=True)
        sys.exit(2)

    program_path = resolve_program_path(settings["sshuttle_path"])
    listener = _EchoListener()

    click.echo(f"Connecting to {target} using {program_path}")
    with TunnelSupervisor(
        program_path,
        target,
        listener=listener,
        max_retries=settings["max_retries"] if retries is None else retries,
        retry_delay=settings["retry_delay"],
        termination_grace=settings["termination_grace"],
    ) as supervisor:
        supervisor.start()
        while not listener.finished.wait(0.5):
            pass

    if listener.failed:
        sys.exit(1)


@cli.command()
def configure():
    """
    Interactively configure the tunnel target and sshuttle location.

    The settings are stored in ~/.config/shuttlebar/config.toml and used by
    both the menu bar app and the connect command.
    """
    cfg = config.load_config()
    target_cfg = cfg["target"]
    settings = cfg["settings"]

    click.echo(click.style("--- ShuttleBar Configuration ---", bold=True, underline=True))

    while True:
        remote = click.prompt("Remote (user@host)", default=target_cfg["remote"])
        subnet = click.prompt("Destination subnet", default=target_cfg["subnet"])
        dns = click.confirm("Forward DNS requests through the tunnel?", default=target_cfg["dns"])
        latency_control = click.confirm(
            "Enable latency control?", default=target_cfg["latency_control"]
        )
        auto_hosts = click.confirm(
            "Discover remote hostnames automatically (-H)?", default=target_cfg["auto_hosts"]
        )
        try:
            target = TunnelTarget(
                remote=remote,
                subnet=subnet,
                dns=dns,
                latency_control=latency_control,
                auto_hosts=auto_hosts,
            )
            break
        except ValueError as e:
            click.echo(click.style(f"Invalid target: {e}", fg="red"), err=True)

    detected = find_sshuttle_binary()
    settings["sshuttle_path"] = click.prompt(
        "Path to sshuttle (empty to auto-detect)",
        default=settings.get("sshuttle_path") or "",
        show_default=bool(settings.get("sshuttle_path")),
    )
    if not settings["sshuttle_path"] and detected:
        click.echo(f"sshuttle will be auto-detected (currently {detected})")

    cfg["target"] = config.target_to_config(target)
    try:
        path = config.save_config(cfg)
    except OSError as e:
        click.echo(f"Error saving configuration file: {e}", err=True)
        sys.exit(1)

    click.echo(click.style(f"\nConfiguration saved to {path}", fg="green"))
    click.echo(f"sshuttle will run as: {' '.join(['sshuttle'] + target.arguments())}")


@cli.command(name="show-config")
def show_config():
    """Print the current configuration file."""
    cfg = config.load_config()
    click.echo(f"# {config.get_config_path()}")
    click.echo(toml.dumps(cfg))


@cli.command()
def check():
    """
    Check that sshuttle is installed and report its version.
    """
    settings = config.settings_from_config(config.load_config())
    binary = find_sshuttle_binary(settings["sshuttle_path"])
    if not binary:
        click.echo(click.style("✗ sshuttle not found.", fg="red"))
        click.echo("Install it with: brew install sshuttle")
        if settings["sshuttle_path"]:
            click.echo(f"Configured path: {settings['sshuttle_path']}")
        sys.exit(1)

    version = get_sshuttle_version(binary)
    click.echo(click.style(f"✓ sshuttle found at {binary}", fg="green"))
    click.echo(f"Version: {version or 'unknown'}")


if __name__ == "__main__":
    cli()
