#!/usr/bin/env python3
import sys
import shutil
import socket
import logging
import subprocess

LOOPBACK_ADDRESSES = {"127.0.0.1", "::1"}


class DNSCacheFlusher:
    """Flush the OS resolver cache so blocked names stop resolving from cache"""

    def __init__(self, platform=None, timeout=15):
        self.platform = platform or sys.platform
        self.timeout = timeout

    def _commands(self):
        if self.platform == "darwin":
            return [["dscacheutil", "-flushcache"], ["killall", "-HUP", "mDNSResponder"]]
        if self.platform.startswith("linux"):
            if shutil.which("resolvectl"):
                return [["resolvectl", "flush-caches"]]
            if shutil.which("systemd-resolve"):
                return [["systemd-resolve", "--flush-caches"]]
            if shutil.which("nscd"):
                return [["nscd", "--invalidate=hosts"]]
        return []

    def flush(self):
        commands = self._commands()
        if not commands:
            logging.warning(f"No DNS cache flush command available on {self.platform}")
            return False
        try:
            for cmd in commands:
                subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            logging.warning(f"Failed to flush DNS cache: {e}")
            return False
        logging.info(f"Flushed DNS cache ({self.platform})")
        return True

    def verify(self, domains):
        """Return the domains that still resolve to something other than loopback"""
        leaking = []
        for domain in domains:
            try:
                infos = socket.getaddrinfo(domain, None)
            except OSError as e:
                logging.warning(f"Resolver check failed for {domain}: {e}")
                continue
            addrs = {info[4][0] for info in infos}
            if addrs and not addrs.issubset(LOOPBACK_ADDRESSES):
                logging.error(f"Resolver for {domain} -> {sorted(addrs)}, expected only loopback")
                leaking.append(domain)
        return leaking
