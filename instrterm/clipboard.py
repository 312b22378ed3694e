"""
Reading text from the system clipboard, using the platform's clipboard tools:
macOS, Windows, Linux (Wayland/X11/Termux).
"""

import os
import sys
import shutil
import logging
import subprocess


logger = logging.getLogger("instrterm")

TIMEOUT = 5


def get_paste_commands():
    """Get the commands to try, in order, for the current platform."""
    if sys.platform == "darwin":
        return [["pbpaste"]]
    elif sys.platform.startswith("win"):
        return [["powershell", "-NoProfile", "-Command", "Get-Clipboard -Raw"]]

    commands = []
    if os.environ.get("TERMUX_VERSION"):
        commands.append(["termux-clipboard-get"])
    if os.environ.get("WAYLAND_DISPLAY"):
        commands.append(["wl-paste", "--no-newline"])
    # X11, or XWayland as a fallback
    commands.append(["xclip", "-selection", "clipboard", "-out"])
    commands.append(["xsel", "--clipboard", "--output"])
    return commands


def read_clipboard():
    """Get the text on the clipboard. Returns "" if it cannot be read."""
    for command in get_paste_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            p = subprocess.run(
                command, capture_output=True, timeout=TIMEOUT, check=True
            )
        except (OSError, subprocess.SubprocessError) as err:
            logger.warning(f"Could not read clipboard with {command[0]}: {err}")
            continue
        return p.stdout.decode("utf-8", errors="replace")

    logger.warning("No clipboard tool available")
    return ""
