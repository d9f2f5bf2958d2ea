#!/usr/bin/env python3
import os
import logging

from focusshield.core.errors import PrivilegeError


def is_root():
    return hasattr(os, "geteuid") and os.geteuid() == 0


def can_write_hosts(hosts_path):
    """True when this process can replace the hosts file and create its backup.

    Both the file and its directory must be writable: writes go through a
    temp file in the same directory, and the backup lives next to it.
    """
    hosts_dir = os.path.dirname(os.path.abspath(hosts_path))
    return os.access(hosts_path, os.W_OK) and os.access(hosts_dir, os.W_OK)


def require_hosts_access(hosts_path):
    if not can_write_hosts(hosts_path):
        raise PrivilegeError(f"No permission to modify {hosts_path}. Run FocusShield with sudo.")


def check_privileges(hosts_path):
    """Startup check: warn, but do not refuse, when blocking would fail"""
    if can_write_hosts(hosts_path):
        return True
    if not is_root():
        logging.warning("Not running as root; focus sessions will be refused until restarted with sudo")
    else:
        logging.warning(f"{hosts_path} is not writable even as root (immutable flag or read-only mount?)")
    return False
