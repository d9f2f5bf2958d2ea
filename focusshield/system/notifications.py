#!/usr/bin/env python3
import sys
import shutil
import logging
import subprocess

# Sets the Control Center checkbox to the wanted state instead of blindly
# clicking it, so running it twice does not flip DND back.
DND_SCRIPT = '''
tell application "System Events" to tell application process "Control Center"
    set dndToggle to checkbox "Do Not Disturb" of group 1 of window "Control Center"
    if (value of dndToggle as boolean) is not {enabled} then click dndToggle
end tell
'''


class NotificationSilencer:
    """Toggle macOS "Do Not Disturb" through UI scripting.

    Best-effort only: the blocking itself does not depend on it, so every
    failure is logged and reported through the return value.
    """

    def __init__(self, platform=None, timeout=10):
        self.platform = platform or sys.platform
        self.timeout = timeout

    def is_supported(self):
        return self.platform == "darwin" and shutil.which("osascript") is not None

    def set_do_not_disturb(self, enabled):
        state = "enabled" if enabled else "disabled"
        if not self.is_supported():
            logging.warning(f"Do Not Disturb is not supported on {self.platform}, leaving notifications alone")
            return False

        script = DND_SCRIPT.format(enabled="true" if enabled else "false")
        try:
            subprocess.run(["osascript", "-e", script],
                           check=True, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            logging.warning(f"osascript failed to set Do Not Disturb ({e.returncode}): {e.stderr.strip()}")
            return False
        except (OSError, subprocess.SubprocessError) as e:
            logging.warning(f"Failed to set Do Not Disturb: {e}")
            return False

        logging.info(f"Do Not Disturb {state}")
        return True
