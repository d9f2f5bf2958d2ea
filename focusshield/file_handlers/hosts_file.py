#!/usr/bin/env python3
import os
import re
import errno
import shutil
import logging

from focusshield.core.errors import HostsFileError
from focusshield.utils.config import HOSTS_END_MARK, HOSTS_FILE, HOSTS_START_MARK, HOSTS_BACKUP_SUFFIX

# Hosts files are not guaranteed to be UTF-8; surrogateescape carries any
# stray bytes through unchanged. newline='' keeps line endings untouched.
TEXT_MODE = {'encoding': 'utf-8', 'errors': 'surrogateescape', 'newline': ''}

NEWLINE_NOTE = "# FocusShield added the line break above this section"


class HostsFileHandler:
    def __init__(self, hosts_path=HOSTS_FILE, hosts_backup=None,
                 marker_start=HOSTS_START_MARK, marker_end=HOSTS_END_MARK):
        self.hosts_path = hosts_path
        self.hosts_backup = hosts_backup or hosts_path + HOSTS_BACKUP_SUFFIX
        self.marker_start = marker_start
        self.marker_end = marker_end
        self._section = re.compile(
            rf"(\n)?{re.escape(self.marker_start)}[\s\S]*?{re.escape(self.marker_end)}\r?\n?"
        )

    # ------------------------------------------------------------------
    # Raw I/O
    # ------------------------------------------------------------------
    def _read(self, path):
        with open(path, 'r', **TEXT_MODE) as f:
            return f.read()

    def _write_in_place(self, path, content):
        with open(path, 'w', **TEXT_MODE) as f:
            f.write(content)

    def _write(self, path, content):
        """Replace ``path`` atomically, keeping the mode of the file being replaced.

        Symlinks and mount points (a bind-mounted /etc/hosts in a container)
        cannot be swapped out with os.replace, so they are rewritten in place.
        """
        if os.path.islink(path) or os.path.ismount(path):
            self._write_in_place(path, content)
            return

        temp = f"{path}.focusshield.tmp"
        try:
            with open(temp, 'w', **TEXT_MODE) as f:
                f.write(content)
            if os.path.exists(path):
                shutil.copymode(path, temp)
            os.replace(temp, path)
        except (OSError, UnicodeError) as e:
            if os.path.exists(temp):
                os.remove(temp)
            busy = isinstance(e, OSError) and e.errno in (errno.EBUSY, errno.EXDEV)
            if not busy or not os.path.exists(path):
                raise
            logging.info(f"Cannot replace {path} ({e.strerror}), rewriting it in place")
            self._write_in_place(path, content)

    def read_hosts(self):
        try:
            return self._read(self.hosts_path)
        except (OSError, UnicodeError) as e:
            raise HostsFileError(f"Failed to read {self.hosts_path}: {e}") from e

    # ------------------------------------------------------------------
    # Managed section
    # ------------------------------------------------------------------
    def has_block_section(self, content=None):
        if content is None:
            content = self.read_hosts()
        return self.marker_start in content and self.marker_end in content

    def _drop_section(self, match):
        # Give back the line break before the section unless apply() added it
        if match.group(1) and NEWLINE_NOTE not in match.group(0):
            return match.group(1)
        return ""

    def strip_block_section(self, content):
        """Remove every managed section without merging the surrounding lines"""
        return self._section.sub(self._drop_section, content)

    def make_block_section(self, domains, added_newline=False):
        lines = [
            self.marker_start,
            "# This section is managed by FocusShield and removed when the session ends",
        ]
        if added_newline:
            lines.append(NEWLINE_NOTE)
        for domain in domains:
            lines.append(f"127.0.0.1 {domain}")
            lines.append(f"::1 {domain}")
        lines.append(self.marker_end)
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Session operations
    # ------------------------------------------------------------------
    def has_backup(self):
        return os.path.exists(self.hosts_backup)

    def backup(self):
        """Snapshot the live hosts file to the backup path.

        A section left behind by a killed session is not part of the user's
        own content, so it is stripped from the snapshot.
        """
        content = self.read_hosts()
        if self.has_block_section(content):
            logging.warning("Found a leftover FocusShield section in hosts file, excluding it from backup")
            content = self.strip_block_section(content)
        try:
            self._write(self.hosts_backup, content)
        except (OSError, UnicodeError) as e:
            raise HostsFileError(f"Failed to write hosts backup {self.hosts_backup}: {e}") from e
        logging.info(f"Created hosts file backup at {self.hosts_backup}")

    def apply(self, domains):
        """Append the block section for ``domains``, replacing any existing one"""
        if not domains:
            raise HostsFileError("No domains to block")
        content = self.strip_block_section(self.read_hosts())
        added_newline = bool(content) and not content.endswith("\n")
        if added_newline:
            content += "\n"
        try:
            self._write(self.hosts_path, content + self.make_block_section(domains, added_newline))
        except (OSError, UnicodeError) as e:
            raise HostsFileError(f"Failed to update {self.hosts_path}: {e}") from e
        logging.info(f"Blocked {len(domains)} domains in hosts file")

    def restore(self):
        """Put the pre-session hosts file back.

        Returns True when the live file was changed. With no backup and no
        managed section this is a no-op, so calling it twice is safe.
        """
        if self.has_backup():
            try:
                original = self._read(self.hosts_backup)
                self._write(self.hosts_path, original)
                os.remove(self.hosts_backup)
            except (OSError, UnicodeError) as e:
                raise HostsFileError(f"Failed to restore hosts file from {self.hosts_backup}: {e}") from e
            logging.info("Restored hosts file from backup")
            return True

        content = self.read_hosts()
        if not self.has_block_section(content):
            logging.debug("Nothing to restore in hosts file")
            return False
        try:
            self._write(self.hosts_path, self.strip_block_section(content))
        except (OSError, UnicodeError) as e:
            raise HostsFileError(f"Failed to remove block section from {self.hosts_path}: {e}") from e
        logging.warning("No hosts backup found, removed the FocusShield section instead")
        return True

    def recover(self):
        """Undo whatever a killed session left behind; True if anything was restored"""
        if not self.has_backup() and not self.has_block_section():
            return False
        logging.warning("Found state from an earlier session that did not end cleanly, restoring hosts file")
        return self.restore()
