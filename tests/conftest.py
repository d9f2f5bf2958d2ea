import io

import pytest

from focusshield.core.session import FocusSession
from focusshield.file_handlers.block_list import BlockListHandler
from focusshield.file_handlers.hosts_file import HostsFileHandler

ORIGINAL_HOSTS = (
    "##\n"
    "# Host Database\n"
    "##\n"
    "127.0.0.1\tlocalhost\n"
    "255.255.255.255\tbroadcasthost\n"
    "::1             localhost\n"
)


class FakeSilencer:
    def __init__(self):
        self.calls = []

    def set_do_not_disturb(self, enabled):
        self.calls.append(enabled)
        return True


class FakeFlusher:
    def __init__(self, leaking=None):
        self.flushes = 0
        self.verified = []
        self.leaking = leaking or []

    def flush(self):
        self.flushes += 1
        return True

    def verify(self, domains):
        self.verified.append(list(domains))
        return list(self.leaking)


@pytest.fixture
def hosts_path(tmp_path):
    path = tmp_path / "hosts"
    path.write_text(ORIGINAL_HOSTS)
    return path


@pytest.fixture
def hosts_handler(hosts_path):
    return HostsFileHandler(str(hosts_path))


@pytest.fixture
def block_list(tmp_path):
    handler = BlockListHandler(str(tmp_path / "state" / "blocklist.txt"))
    handler.load()
    return handler


@pytest.fixture
def silencer():
    return FakeSilencer()


@pytest.fixture
def flusher():
    return FakeFlusher()


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def session(hosts_handler, block_list, silencer, flusher, output):
    return FocusSession(hosts_handler, block_list, silencer, flusher, tick_interval=0.01, out=output)
