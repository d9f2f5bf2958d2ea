#!/usr/bin/env python3
"""
FocusShield - Block distracting websites and notifications for a focus session.

Blocked domains are redirected to loopback in the system hosts file, macOS
"Do Not Disturb" is switched on, and everything is reverted when the timer
runs out or the session is stopped.

Usage:
    sudo python main.py                         # Interactive prompt
    sudo python main.py --duration 25           # One 25 minute session
    sudo python main.py --duration 50 --daemon  # Same, in the background
    sudo python main.py --restore               # Clean up after a killed session
"""
import sys

from focusshield.utils.daemon import main

if __name__ == "__main__":
    sys.exit(main())
