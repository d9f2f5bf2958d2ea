#!/usr/bin/env python3
from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from focusshield.core.errors import FocusShieldError


# ---------- Constants ----------

HOSTS_FILE: str = "/etc/hosts"
HOSTS_BACKUP_SUFFIX: str = ".focusshield.bak"
HOSTS_START_MARK: str = "# FOCUSSHIELD START"
HOSTS_END_MARK: str = "# FOCUSSHIELD END"

STATE_DIR_NAME: str = ".focusshield"
BLOCK_LIST_NAME: str = "blocklist.txt"
LOG_FILE_NAME: str = "focusshield.log"
LOCK_FILE_NAME: str = "focusshield"

DEFAULT_SESSION_MINUTES: int = 25
TICK_INTERVAL_SECONDS: float = 1.0

DEFAULT_BLOCK_LIST = (
    "twitter.com", "x.com", "facebook.com", "instagram.com",
    "reddit.com", "youtube.com", "tiktok.com", "linkedin.com",
    "netflix.com", "twitch.tv", "discord.com",
)


def home_directory() -> Path:
    """Return the user's home directory or raise if it cannot be determined."""
    try:
        home = Path.home()
    except (KeyError, RuntimeError) as e:
        raise FocusShieldError(f"Cannot determine home directory: {e}") from e
    if not str(home) or str(home) == "~":
        raise FocusShieldError("Cannot determine home directory")
    return home


@dataclasses.dataclass
class Settings:
    hosts_path: str = HOSTS_FILE
    hosts_backup_path: str = HOSTS_FILE + HOSTS_BACKUP_SUFFIX
    state_dir: str = ""
    block_list_path: str = ""
    log_path: str = ""
    lock_path: str = ""
    tick_interval: float = TICK_INTERVAL_SECONDS
    strict_backup: bool = True

    @classmethod
    def for_state_dir(cls, state_dir: str, hosts_path: str = HOSTS_FILE, **overrides) -> "Settings":
        """Build settings that keep every per-user file under ``state_dir``."""
        settings = cls(
            hosts_path=hosts_path,
            hosts_backup_path=hosts_path + HOSTS_BACKUP_SUFFIX,
            state_dir=state_dir,
            block_list_path=os.path.join(state_dir, BLOCK_LIST_NAME),
            log_path=os.path.join(state_dir, LOG_FILE_NAME),
            lock_path=os.path.join(state_dir, LOCK_FILE_NAME),
        )
        return dataclasses.replace(settings, **overrides)

    @classmethod
    def from_args(cls, args) -> "Settings":
        """Build settings from parsed command line arguments."""
        state_dir = args.state_dir or str(home_directory() / STATE_DIR_NAME)
        overrides = {"strict_backup": not args.allow_missing_backup}
        if args.blocklist:
            overrides["block_list_path"] = args.blocklist
        if args.log_file:
            overrides["log_path"] = args.log_file
        return cls.for_state_dir(state_dir, hosts_path=args.hosts_file or HOSTS_FILE, **overrides)

    def ensure_state_dir(self) -> None:
        os.makedirs(self.state_dir, exist_ok=True)
