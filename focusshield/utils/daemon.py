#!/usr/bin/env python3
import os
import sys
import signal
import argparse
import logging
from daemon.daemon import DaemonContext
import lockfile

from focusshield.core.errors import FocusShieldError, HostsFileError
from focusshield.core.session import FocusSession
from focusshield.core.shell import CommandShell
from focusshield.file_handlers.block_list import BlockListHandler
from focusshield.file_handlers.hosts_file import HostsFileHandler
from focusshield.security.privileges import can_write_hosts, check_privileges
from focusshield.system.dns import DNSCacheFlusher
from focusshield.system.notifications import NotificationSilencer
from focusshield.utils.config import Settings


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='focusshield',
        description='Block distracting websites and notifications for a focus session. '
                    'Without --duration an interactive prompt is started.')
    parser.add_argument('--duration', type=int, help='Run one session of this many minutes, then exit')
    parser.add_argument('--daemon', action='store_true', help='Run the --duration session in the background')
    parser.add_argument('--restore', action='store_true',
                        help='Restore the hosts file left behind by a killed session, then exit')
    parser.add_argument('--hosts-file', help='Hosts file to modify (default: /etc/hosts)')
    parser.add_argument('--blocklist', help='Block list file (default: ~/.focusshield/blocklist.txt)')
    parser.add_argument('--state-dir', help='Directory for the block list, log and lock files')
    parser.add_argument('--log-file', help='Log file (default: <state dir>/focusshield.log)')
    parser.add_argument('--allow-missing-backup', action='store_true',
                        help='Start a session even if the hosts file backup cannot be written')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output')
    args = parser.parse_args(argv)

    if args.daemon and args.duration is None:
        parser.error('--daemon requires --duration')
    if args.duration is not None and args.duration <= 0:
        parser.error('--duration must be a positive number of minutes')
    if args.restore and args.duration is not None:
        parser.error('--restore cannot be combined with --duration')
    return args


def configure_logging(settings, console_level=logging.INFO, verbose=False):
    handlers = []
    try:
        os.makedirs(os.path.dirname(os.path.abspath(settings.log_path)), exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_path))
    except OSError as e:
        print(f"Logging to file disabled: {e}", file=sys.stderr)
    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else console_level)
    handlers.append(console)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_session(settings, interactive=True):
    hosts_handler = HostsFileHandler(settings.hosts_path, settings.hosts_backup_path)
    block_list = BlockListHandler(settings.block_list_path)
    block_list.load()
    return FocusSession(
        hosts_handler,
        block_list,
        NotificationSilencer(),
        DNSCacheFlusher(),
        tick_interval=settings.tick_interval,
        strict_backup=settings.strict_backup,
        show_countdown=interactive,
    )


def recover_hosts(session):
    """Restore a hosts file left modified by a session that was killed"""
    hosts_handler = session.hosts_handler
    if not can_write_hosts(hosts_handler.hosts_path):
        if hosts_handler.has_backup():
            logging.warning(f"Found {hosts_handler.hosts_backup} from an earlier session; "
                            "run with sudo to restore it")
        return False
    try:
        restored = hosts_handler.recover()
    except HostsFileError as e:
        logging.error(f"Failed to recover hosts file: {e}")
        return False
    if restored:
        session.dns_flusher.flush()
        session.say("Restored the hosts file left behind by an earlier session")
    return restored


def make_signal_handler(session):
    def _signal_handler(signum, frame):
        """Restore the hosts file before the process goes away"""
        logging.warning(f"Received signal {signal.Signals(signum).name} ({signum})")
        session.stop()
        sys.exit(0)
    return _signal_handler


def install_signal_handlers(session):
    handler = make_signal_handler(session)
    signal.signal(signal.SIGTERM, handler)
    signal.signal(signal.SIGHUP, handler)


def acquire_instance_lock(settings):
    lock = lockfile.FileLock(settings.lock_path)
    try:
        lock.acquire(timeout=0)
    except lockfile.AlreadyLocked:
        print("Another FocusShield instance is already running")
        print(f"If this is an error, remove: {lock.lock_file}")
        return None
    except lockfile.LockFailed as e:
        print(f"Failed to create lock {lock.lock_file}: {e}")
        return None
    return lock


def run_interactive(settings):
    """Run the command prompt until the user quits"""
    session = build_session(settings, interactive=True)
    if not check_privileges(settings.hosts_path):
        session.say(f"Warning: cannot modify {settings.hosts_path}. Run with sudo to start sessions.")
    recover_hosts(session)

    install_signal_handlers(session)
    try:
        CommandShell(session).run()
    finally:
        session.stop()
    return 0


def run_foreground(settings, duration):
    """Run one timed session without the prompt"""
    if not check_privileges(settings.hosts_path):
        print(f"Cannot modify {settings.hosts_path}. Run with sudo.")
        return 1
    session = build_session(settings, interactive=sys.stdout.isatty())
    recover_hosts(session)

    install_signal_handlers(session)
    try:
        started = session.start(duration)
    finally:
        session.stop()
    return 0 if started else 1


def run_daemon(settings, duration):
    """Run one timed session detached from the terminal"""
    if not check_privileges(settings.hosts_path):
        print(f"Cannot modify {settings.hosts_path}. Run with sudo.")
        return 1
    session = build_session(settings, interactive=False)
    recover_hosts(session)

    # Pre-flight: DaemonContext would block on a held lock instead of failing
    pid_lock = lockfile.FileLock(settings.lock_path)
    if pid_lock.is_locked():
        print("Another FocusShield instance is already running")
        print(f"If this is an error, remove: {pid_lock.lock_file}")
        return 1

    handler = make_signal_handler(session)
    context = DaemonContext(
        working_directory='/',
        umask=0o022,
        pidfile=pid_lock,
        detach_process=True,
        files_preserve=[h.stream.fileno() for h in logging.getLogger().handlers
                        if isinstance(h, logging.FileHandler)],
    )
    context.signal_map = {signal.SIGTERM: handler, signal.SIGHUP: handler}

    print(f"Starting FocusShield in the background for {duration} minutes")
    logging.info("Entering daemon context")
    with context:
        try:
            session.start(duration)
        finally:
            session.stop()
    return 0


def run_restore(settings):
    if not can_write_hosts(settings.hosts_path):
        print(f"Cannot modify {settings.hosts_path}. Run with sudo.")
        return 1
    hosts_handler = HostsFileHandler(settings.hosts_path, settings.hosts_backup_path)
    try:
        restored = hosts_handler.restore()
    except HostsFileError as e:
        logging.error(str(e))
        print(f"Restore failed: {e}")
        return 1
    if restored:
        DNSCacheFlusher().flush()
        print("Hosts file restored")
    else:
        print("Nothing to restore")
    return 0


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)
    try:
        settings = Settings.from_args(args)
        settings.ensure_state_dir()
    except (FocusShieldError, OSError) as e:
        print(f"FocusShield cannot start: {e}", file=sys.stderr)
        return 1

    interactive = args.duration is None and not args.restore
    configure_logging(settings, logging.WARNING if interactive else logging.INFO, args.verbose)

    if args.restore:
        return run_restore(settings)

    try:
        # The daemon takes the instance lock as its pid file once detached
        if args.daemon:
            return run_daemon(settings, args.duration)

        lock = acquire_instance_lock(settings)
        if lock is None:
            return 1
        try:
            if interactive:
                return run_interactive(settings)
            return run_foreground(settings, args.duration)
        finally:
            lock.release()
    except FocusShieldError as e:
        logging.error(str(e))
        print(f"FocusShield failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
