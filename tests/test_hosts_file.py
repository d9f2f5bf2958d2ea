import os
import errno

import pytest

from focusshield.core.errors import HostsFileError
from focusshield.file_handlers import hosts_file
from focusshield.file_handlers.hosts_file import HostsFileHandler

from conftest import ORIGINAL_HOSTS

DOMAINS = ["reddit.com", "www.reddit.com", "youtube.com"]


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


def test_apply_adds_loopback_entries(hosts_handler, hosts_path):
    hosts_handler.backup()
    hosts_handler.apply(DOMAINS)

    content = hosts_path.read_text()
    assert content.startswith(ORIGINAL_HOSTS)
    for domain in DOMAINS:
        assert f"127.0.0.1 {domain}\n" in content
        assert f"::1 {domain}\n" in content
    assert content.count(hosts_handler.marker_start) == 1
    assert content.rstrip().endswith(hosts_handler.marker_end)


@pytest.mark.parametrize("original", [
    ORIGINAL_HOSTS,
    "127.0.0.1 localhost",
    "127.0.0.1 localhost\r\n::1 localhost\r\n",
    "",
])
def test_apply_then_restore_is_byte_identical(tmp_path, original):
    path = tmp_path / "hosts"
    with open(path, "w", newline="") as f:
        f.write(original)
    before = read_bytes(path)

    handler = HostsFileHandler(str(path))
    handler.backup()
    handler.apply(DOMAINS)
    assert read_bytes(path) != before
    assert handler.restore() is True

    assert read_bytes(path) == before
    assert not handler.has_backup()


def test_restore_twice_is_noop(hosts_handler, hosts_path):
    hosts_handler.backup()
    hosts_handler.apply(DOMAINS)
    assert hosts_handler.restore() is True
    assert hosts_handler.restore() is False
    assert hosts_path.read_text() == ORIGINAL_HOSTS


def test_restore_without_anything_to_do(hosts_handler, hosts_path):
    assert hosts_handler.restore() is False
    assert hosts_path.read_text() == ORIGINAL_HOSTS


def test_apply_replaces_existing_section(hosts_handler, hosts_path):
    hosts_handler.apply(["reddit.com"])
    hosts_handler.apply(["youtube.com"])

    content = hosts_path.read_text()
    assert content.count(hosts_handler.marker_start) == 1
    assert "reddit.com" not in content
    assert "127.0.0.1 youtube.com" in content


def test_restore_without_backup_strips_leftover_section(hosts_handler, hosts_path):
    hosts_handler.apply(DOMAINS)
    assert not hosts_handler.has_backup()

    assert hosts_handler.restore() is True
    assert hosts_path.read_text() == ORIGINAL_HOSTS


def test_backup_excludes_leftover_section(hosts_handler, hosts_path):
    hosts_handler.apply(["reddit.com"])

    hosts_handler.backup()
    with open(hosts_handler.hosts_backup) as f:
        assert f.read() == ORIGINAL_HOSTS


def test_recover_restores_leftover_backup(hosts_handler, hosts_path):
    hosts_handler.backup()
    hosts_handler.apply(DOMAINS)

    # A fresh handler, as after a crash and restart
    handler = HostsFileHandler(str(hosts_path))
    assert handler.recover() is True
    assert hosts_path.read_text() == ORIGINAL_HOSTS
    assert handler.recover() is False


def test_apply_keeps_file_mode(hosts_handler, hosts_path):
    os.chmod(hosts_path, 0o644)
    hosts_handler.apply(DOMAINS)
    assert os.stat(hosts_path).st_mode & 0o777 == 0o644


def test_apply_without_domains_fails(hosts_handler, hosts_path):
    with pytest.raises(HostsFileError):
        hosts_handler.apply([])
    assert hosts_path.read_text() == ORIGINAL_HOSTS


def test_backup_of_missing_hosts_file_fails(tmp_path):
    handler = HostsFileHandler(str(tmp_path / "missing"))
    with pytest.raises(HostsFileError):
        handler.backup()
    assert not handler.has_backup()


def test_backup_path_defaults_next_to_hosts(hosts_path):
    handler = HostsFileHandler(str(hosts_path))
    assert handler.hosts_backup == f"{hosts_path}.focusshield.bak"


LATIN1_HOSTS = b"# caf\xe9 router\n127.0.0.1 localhost\n"


def test_non_utf8_hosts_round_trip(tmp_path):
    path = tmp_path / "hosts"
    path.write_bytes(LATIN1_HOSTS)

    handler = HostsFileHandler(str(path))
    handler.backup()
    handler.apply(DOMAINS)
    assert b"127.0.0.1 reddit.com" in read_bytes(path)
    assert handler.restore() is True
    assert read_bytes(path) == LATIN1_HOSTS


def test_non_utf8_hosts_recovered_without_backup(tmp_path):
    path = tmp_path / "hosts"
    path.write_bytes(LATIN1_HOSTS)
    HostsFileHandler(str(path)).apply(DOMAINS)

    assert HostsFileHandler(str(path)).recover() is True
    assert read_bytes(path) == LATIN1_HOSTS


def test_strip_gives_back_only_the_original_newline(tmp_path):
    path = tmp_path / "hosts"
    path.write_bytes(b"127.0.0.1 localhost")

    handler = HostsFileHandler(str(path))
    handler.apply(DOMAINS)
    assert not handler.has_backup()
    assert handler.restore() is True
    assert read_bytes(path) == b"127.0.0.1 localhost"


def test_symlinked_hosts_stays_a_symlink(tmp_path):
    target = tmp_path / "real-hosts"
    target.write_text(ORIGINAL_HOSTS)
    link = tmp_path / "hosts"
    os.symlink(target, link)

    handler = HostsFileHandler(str(link))
    handler.backup()
    handler.apply(DOMAINS)
    assert os.path.islink(link)
    assert "127.0.0.1 reddit.com" in target.read_text()

    handler.restore()
    assert os.path.islink(link)
    assert target.read_text() == ORIGINAL_HOSTS


def test_busy_hosts_file_is_rewritten_in_place(hosts_handler, hosts_path, monkeypatch):
    def busy(src, dst):
        raise OSError(errno.EBUSY, "Device or resource busy")

    monkeypatch.setattr(hosts_file.os, "replace", busy)
    hosts_handler.apply(DOMAINS)

    assert "127.0.0.1 reddit.com" in hosts_path.read_text()
    assert not os.path.exists(f"{hosts_path}.focusshield.tmp")

    hosts_handler.restore()
    assert hosts_path.read_text() == ORIGINAL_HOSTS


def test_other_write_errors_are_reported(hosts_handler, hosts_path, monkeypatch):
    def denied(src, dst):
        raise OSError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(hosts_file.os, "replace", denied)
    with pytest.raises(HostsFileError):
        hosts_handler.apply(DOMAINS)
    assert hosts_path.read_text() == ORIGINAL_HOSTS
