import os

# Ensure system paths are in the PATH when launched from Finder or launchd
os.environ["PATH"] = "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin:" + os.environ.get("PATH", "")

import rumps

from . import config
from .external.sshuttle import resolve_program_path
from .logging_config import setup_logging, get_logger
from .tunnel import NoticeKind, SupervisorListener, TunnelSupervisor
from .utils import run_command

logger = get_logger(__name__)

ERROR_NOTICES = {
    NoticeKind.SPAWN_FAILED,
    NoticeKind.GAVE_UP,
    NoticeKind.TERMINATION_TIMEOUT,
}


class ShuttleBarApp(rumps.App, SupervisorListener):
    """Status bar front end for the sshuttle supervisor."""

    def __init__(self, *args, **kwargs):
        if "name" not in kwargs and not args:
            kwargs["name"] = "ShuttleBar"

        super(ShuttleBarApp, self).__init__(*args, **kwargs)

        self.config = config.load_config()
        debug_enabled = self.config.get("settings", {}).get("debug", False)
        setup_logging(debug=debug_enabled)
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        self.settings = settings = config.settings_from_config(self.config)
        target = config.target_from_config(self.config)
        program_path = resolve_program_path(settings["sshuttle_path"])
        self.logger.info(f"Using sshuttle at {program_path}, target {target}")

        self.supervisor = TunnelSupervisor(
            program_path,
            target,
            listener=self,
            max_retries=settings["max_retries"],
            retry_delay=settings["retry_delay"],
            termination_grace=settings["termination_grace"],
        )

        self.setup_menu()

    def setup_menu(self):
        """Builds the status bar menu."""
        self.title = config.TITLE_IDLE
        self.target_item = rumps.MenuItem(self._target_label(), callback=None)
        self.menu.clear()
        self.menu = [
            rumps.MenuItem("Start VPN", callback=self.start_vpn, key="s"),
            rumps.MenuItem("Stop VPN", callback=self.stop_vpn, key="x"),
            None,
            self.target_item,
            rumps.MenuItem("Set Target…", callback=self.set_target),
            rumps.MenuItem("Open Log", callback=self.open_log_file),
            None,
            rumps.MenuItem("Quit", callback=self.quit_app, key="q"),
        ]

    def _target_label(self):
        return f"Target: {self.supervisor.target}"

    # --- Menu callbacks ---

    def start_vpn(self, _):
        self.supervisor.start()

    def stop_vpn(self, _):
        self.supervisor.stop()

    def set_target(self, _):
        """Prompt for 'user@host [subnet]' and use it for the next start."""
        current = self.supervisor.target
        window = rumps.Window(
            message="Remote as user@host, optionally followed by the subnet to route.",
            title="sshuttle target",
            default_text=f"{current.remote} {current.subnet}",
            ok="Save",
            cancel="Cancel",
            dimensions=(320, 24),
        )
        response = window.run()
        if not response.clicked:
            return

        parts = response.text.split()
        if not parts:
            rumps.alert(title="Invalid target", message="The remote must not be empty.")
            return

        changes = {"remote": parts[0]}
        if len(parts) > 1:
            changes["subnet"] = parts[1]
        try:
            target = current.with_changes(**changes)
        except ValueError as e:
            rumps.alert(title="Invalid target", message=str(e))
            return

        self.supervisor.reconfigure(target)
        self.target_item.title = f"Target: {target}"

        self.config["target"] = config.target_to_config(target)
        try:
            config.save_config(self.config)
        except OSError as e:
            self.logger.error(f"Failed to save configuration: {e}")

        if self.supervisor.running:
            rumps.notification(
                title=config.APP_TITLE,
                subtitle="Target updated",
                message="Restart the VPN to use the new target.",
            )

    def open_log_file(self, _):
        """Open the log file in the default application (usually Console.app)."""
        if not run_command(["open", str(config.LOG_FILE)]):
            self.logger.error(f"Failed to open log file: {config.LOG_FILE}")

    def quit_app(self, _):
        self.logger.info("Quit clicked, stopping sshuttle")
        self.supervisor.shutdown(timeout=self.settings["termination_grace"] + 1)
        rumps.quit_application()

    # --- Supervisor events ---

    def on_state_changed(self, running):
        self.title = config.TITLE_RUNNING if running else config.TITLE_IDLE

    def on_output_line(self, text):
        self.logger.info(f"sshuttle: {text.strip()}")

    def on_notice(self, notice):
        if notice.kind in ERROR_NOTICES:
            title = f"{config.APP_TITLE} error"
        else:
            title = config.APP_TITLE
        rumps.notification(title=title, subtitle="", message=notice.message, sound=True)


def main(debug=False, autostart=False):
    """Main function to run the app."""
    setup_logging(debug)

    app = ShuttleBarApp(name=config.APP_NAME, quit_button=None)

    # Hide from dock, this must happen after the app is created but before run()
    import AppKit

    try:
        shared_app = AppKit.NSApplication.sharedApplication()
        shared_app.setActivationPolicy_(AppKit.NSApplicationActivationPolicyAccessory)
        logger.debug("Set application activation policy to hide from dock")
    except Exception as e:
        logger.warning(f"Could not hide from dock: {e}")

    if autostart:
        app.supervisor.start()

    app.run()


if __name__ == "__main__":
    main()
