#!/usr/bin/env python3


class FocusShieldError(Exception):
    """Base class for errors raised by FocusShield"""


class PrivilegeError(FocusShieldError):
    """The process is not allowed to modify the hosts file"""


class HostsFileError(FocusShieldError):
    """Reading, writing or restoring the hosts file failed"""


class BlockListError(FocusShieldError):
    """A domain could not be accepted into the block list"""
