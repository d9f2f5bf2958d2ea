#!/usr/bin/env python3
import os
import re
import logging
import ipaddress
import contextlib

from focusshield.core.errors import BlockListError
from focusshield.utils.config import DEFAULT_BLOCK_LIST

_HOSTNAME = re.compile(
    r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$"
)


def normalize_domain(domain):
    """Reduce user input to a bare hostname.

    Strips scheme, path, query, fragment, port, a trailing dot and a leading
    ``www.``, and lower-cases the rest. ``https://www.Reddit.com/r/all``
    becomes ``reddit.com``.
    """
    d = domain.strip().lower()
    d = re.sub(r"^[a-z][a-z0-9+.-]*://", "", d)
    d = re.split(r"[/?#]", d, maxsplit=1)[0]
    if ':' in d:
        d = d.split(':', 1)[0]
    d = d.rstrip('.')
    if d.startswith('www.'):
        d = d[len('www.'):]
    return d


def is_subdomain(domain):
    # 3+ labels counts as a subdomain; the public suffix list is not consulted
    return len(domain.split('.')) >= 3


def expand_www_variants(domain):
    """Return ``domain`` plus its ``www.`` variant when it is a root domain"""
    if is_subdomain(domain):
        return [domain]
    return [domain, f"www.{domain}"]


def validate_domain(domain):
    if not domain:
        raise BlockListError("Please specify a domain")
    with contextlib.suppress(ValueError):
        ipaddress.ip_address(domain)
        raise BlockListError(f"{domain} is an IP address; only domain names can be blocked")
    if not _HOSTNAME.match(domain):
        raise BlockListError(f"{domain} is not a valid domain name")


class BlockListHandler:
    def __init__(self, block_list_path, defaults=DEFAULT_BLOCK_LIST):
        self.block_list_path = block_list_path
        self.defaults = defaults
        self.domains = set()

    def __len__(self):
        return len(self.domains)

    def __contains__(self, domain):
        return domain in self.domains

    def __iter__(self):
        return iter(self.sorted())

    def sorted(self):
        return sorted(self.domains)

    def _ensure_block_list_directory(self):
        block_list_dir = os.path.dirname(self.block_list_path)
        if block_list_dir and not os.path.exists(block_list_dir):
            os.makedirs(block_list_dir, exist_ok=True)
            logging.info(f"Created block list directory: {block_list_dir}")

    def load(self):
        """Read the block list, seeding it with the defaults on first run"""
        if not os.path.exists(self.block_list_path):
            self.create_default_block_list()
            return self.sorted()

        try:
            with open(self.block_list_path, 'r', encoding='utf-8') as f:
                self.domains = {
                    line.strip().lower() for line in f
                    if line.strip() and not line.strip().startswith('#')
                }
        except OSError as e:
            raise BlockListError(f"Failed to read block list {self.block_list_path}: {e}") from e
        logging.info(f"Loaded {len(self.domains)} domains from {self.block_list_path}")
        return self.sorted()

    def create_default_block_list(self):
        domains = set()
        for domain in self.defaults:
            domains.update(expand_www_variants(domain))
        self.save(domains)
        logging.info(f"Created default block list at {self.block_list_path}")

    def save(self, domains=None):
        """Write ``domains`` (default: the current set) and make it the current set.

        The in-memory set only changes once the file is written, so a failed
        save leaves both exactly as they were.
        """
        domains = set(self.domains if domains is None else domains)
        try:
            self._ensure_block_list_directory()
            temp = f"{self.block_list_path}.tmp"
            with open(temp, 'w', encoding='utf-8') as f:
                f.write("".join(f"{domain}\n" for domain in sorted(domains)))
            os.replace(temp, self.block_list_path)
        except OSError as e:
            raise BlockListError(f"Failed to save block list {self.block_list_path}: {e}") from e
        self.domains = domains
        logging.debug(f"Saved {len(self.domains)} domains to {self.block_list_path}")

    def add(self, domain):
        """Add a domain (and its www variant); returns the entries that were new"""
        clean = normalize_domain(domain)
        validate_domain(clean)
        added = [d for d in expand_www_variants(clean) if d not in self.domains]
        if not added:
            logging.info(f"{clean} is already in the block list")
            return []
        self.save(self.domains | set(added))
        logging.info(f"Added {', '.join(added)} to block list")
        return added

    def remove(self, domain):
        """Remove a domain (and its www variant); returns the entries removed"""
        clean = normalize_domain(domain)
        if not clean:
            raise BlockListError("Please specify a domain")
        removed = [d for d in expand_www_variants(clean) if d in self.domains]
        if not removed:
            logging.info(f"{clean} is not in the block list")
            return []
        self.save(self.domains - set(removed))
        logging.info(f"Removed {', '.join(removed)} from block list")
        return removed
