#!/usr/bin/env python3
import sys
import logging
import datetime

from focusshield.core.countdown import Countdown, format_remaining
from focusshield.core.errors import BlockListError, HostsFileError, PrivilegeError
from focusshield.security.privileges import require_hosts_access
from focusshield.utils.config import TICK_INTERVAL_SECONDS


class FocusSession:
    """Owns the blocking state and drives the hosts file, DNS and DND helpers.

    At most one session is active at a time. ``end_time`` is None for a
    diagnostic ``test`` session, which runs until ``stop()``.
    """

    def __init__(self, hosts_handler, block_list, silencer, dns_flusher,
                 tick_interval=TICK_INTERVAL_SECONDS, strict_backup=True, show_countdown=True, out=None):
        self.hosts_handler = hosts_handler
        self.block_list = block_list
        self.silencer = silencer
        self.dns_flusher = dns_flusher
        self.tick_interval = tick_interval
        self.strict_backup = strict_backup
        self.show_countdown = show_countdown
        self.out = out or sys.stdout

        self.active = False
        self.start_time = None
        self.end_time = None
        self.countdown = None
        self._last_logged_minute = None

    def say(self, message="", end="\n"):
        print(message, end=end, file=self.out, flush=True)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def time_remaining(self):
        if not self.active or self.end_time is None:
            return None
        return max(self.end_time - datetime.datetime.now(), datetime.timedelta(0))

    def _block(self):
        """Backup, patch hosts and silence notifications; True once blocking is live"""
        try:
            require_hosts_access(self.hosts_handler.hosts_path)
        except PrivilegeError as e:
            logging.error(str(e))
            self.say(f"Cannot start: {e}")
            return False

        domains = self.block_list.sorted()
        if not domains:
            self.say("Block list is empty. Add a domain first with 'add <domain>'.")
            return False

        try:
            self.hosts_handler.backup()
        except HostsFileError as e:
            if self.strict_backup:
                logging.error(f"Refusing to block without a hosts backup: {e}")
                self.say(f"Cannot start: hosts file backup failed ({e})")
                return False
            logging.warning(f"Continuing without a hosts backup: {e}")
            self.say("Warning: hosts file backup failed, continuing anyway")

        try:
            self.hosts_handler.apply(domains)
        except HostsFileError as e:
            logging.error(f"Failed to apply block: {e}")
            self.say(f"Cannot start: {e}")
            self._rollback()
            return False

        self.dns_flusher.flush()
        self.silencer.set_do_not_disturb(True)
        return True

    def _rollback(self):
        try:
            self.hosts_handler.restore()
        except HostsFileError as e:
            logging.error(f"Rollback of hosts file failed: {e}")
            self.say(f"Warning: hosts file may still contain blocks, run with --restore ({e})")

    def start(self, minutes, wait=True):
        """Start a timed session; with ``wait`` this blocks until it ends"""
        if self.active:
            logging.warning("Start requested while a session is already active")
            self.say("A focus session is already active. Use 'stop' to end it first.")
            return False
        if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
            self.say("Please specify a valid duration in minutes")
            return False

        if not self._block():
            return False

        self.active = True
        self.start_time = datetime.datetime.now()
        self.end_time = self.start_time + datetime.timedelta(minutes=minutes)
        logging.info(f"Focus session started for {minutes} minutes, ends at {self.end_time.isoformat(timespec='seconds')}")

        self.say(f"Focus session started for {minutes} minutes")
        self.say(f"   Blocking {len(self.block_list)} domains")
        self.say(f"   End time: {self.end_time.strftime('%H:%M')}")

        if wait:
            self.wait()
        return True

    def test(self):
        """Apply the block without a timer so blocking can be checked by hand"""
        if self.active:
            self.say("A focus session is already active. Use 'stop' to end it first.")
            return False
        if not self._block():
            return False

        self.active = True
        self.start_time = datetime.datetime.now()
        self.end_time = None
        logging.info("Test block applied")
        self.say(f"Test block applied for {len(self.block_list)} domains (no timer)")

        leaking = self.dns_flusher.verify(self.block_list.sorted())
        if leaking:
            self.say(f"   Still resolving outside loopback: {', '.join(leaking)}")
            self.say("   A browser or system DNS cache may need a restart")
        else:
            self.say("   All blocked domains resolve to loopback")
        self.say("   Run 'stop' to remove the block")
        return True

    def wait(self):
        """Run the countdown for the active session, then end it.

        Ctrl-C during the countdown ends the session early.
        """
        if not self.active or self.end_time is None:
            return False

        self.countdown = Countdown(self.end_time, interval=self.tick_interval, on_tick=self._show_remaining)
        self._last_logged_minute = None
        expired = False
        try:
            expired = self.countdown.run()
        except KeyboardInterrupt:
            self.countdown.cancel()
            logging.info("Countdown interrupted")
        self.say()
        if expired:
            logging.info("Focus session time is up")
        self.stop()
        return expired

    def _show_remaining(self, remaining):
        if self.show_countdown:
            self.say(f"\r{format_remaining(remaining)} remaining...", end="")
            return
        # Headless runs log once per minute instead of redrawing a line
        minute = -(-int(remaining.total_seconds()) // 60)
        if minute != self._last_logged_minute:
            self._last_logged_minute = minute
            logging.info(f"{minute} minutes remaining")

    def stop(self):
        """End the session and undo every change; a no-op when nothing is active"""
        if not self.active:
            return False

        if self.countdown is not None:
            self.countdown.cancel()

        try:
            self.hosts_handler.restore()
        except HostsFileError as e:
            logging.error(f"Failed to restore hosts file: {e}")
            self.say(f"Could not restore the hosts file: {e}")
            self.say("Blocking is still on. Run 'stop' again once the problem is fixed.")
            return False

        self.dns_flusher.flush()
        self.silencer.set_do_not_disturb(False)

        self.active = False
        self.start_time = None
        self.end_time = None
        self.countdown = None
        logging.info("Focus session ended")

        self.say("Focus session ended")
        self.say("   Great work! Take a break.")
        return True

    def status(self):
        if not self.active:
            return "No active session"
        remaining = self.time_remaining()
        if remaining is None:
            return "Test block active - no timer, use 'stop' to remove it"
        minutes, seconds = divmod(int(remaining.total_seconds()), 60)
        return f"Session active - {minutes}m {seconds}s remaining"

    # ------------------------------------------------------------------
    # Block list
    # ------------------------------------------------------------------
    def add(self, domain):
        try:
            added = self.block_list.add(domain)
        except BlockListError as e:
            self.say(str(e))
            return False
        if not added:
            self.say("Domain already blocked")
            return False
        self.say(f"Added {', '.join(added)} to blocklist")
        if self.active:
            self.say("   Takes effect with the next session")
        return True

    def remove(self, domain):
        try:
            removed = self.block_list.remove(domain)
        except BlockListError as e:
            self.say(str(e))
            return False
        if not removed:
            self.say("Domain not in blocklist")
            return False
        self.say(f"Removed {', '.join(removed)} from blocklist")
        if self.active:
            self.say("   Takes effect with the next session")
        return True

    def list(self):
        domains = self.block_list.sorted()
        self.say(f"Blocklist ({len(domains)} domains):")
        for domain in domains:
            self.say(f"   - {domain}")
        return domains
