import sys
import logging
import threading

from .clipboard import read_clipboard


logger = logging.getLogger("instrterm")

MESSAGE_STYLES = {
    "info": "\x1b[2m",  # dim
    "warning": "\x1b[33m",  # yellow
    "error": "\x1b[31m",  # red
}


class TerminalHost:
    """The host of the device console: a plain terminal.

    This provides what the console needs from the world around it: a
    display, the clipboard, the script to run (the "active document"),
    and a way to ask for the device address.
    """

    def __init__(self, file_out=None, script_path=None, clipboard_reader=None):
        self._file_out = file_out or sys.stdout
        self._script_path = script_path
        self._clipboard_reader = clipboard_reader or read_clipboard
        self._lock = threading.RLock()

    @property
    def script_path(self):
        return self._script_path

    def write_to_display(self, text):
        with self._lock:
            file = self._file_out
            file.buffer.write(text.encode(file.encoding, errors="ignore"))
            file.buffer.flush()

    def show_message(self, text, level="info"):
        """Show a status message on a line of its own."""
        style = MESSAGE_STYLES.get(level, "")
        self.write_to_display(f"\r\n{style}[{text}]\x1b[0m\r\n")

    def read_clipboard_text(self, callback):
        """Read the clipboard in a thread, and call callback with the text."""

        def read():
            try:
                text = self._clipboard_reader()
            except Exception as err:
                logger.error(f"Error reading clipboard: {err}")
                text = ""
            callback(text)

        threading.Thread(target=read, daemon=True).start()

    def get_active_document_text(self):
        """Get the source of the script file, or None if there is no script."""
        if not self._script_path:
            return None
        with open(self._script_path, "rb") as fh:
            return fh.read().decode("utf-8")

    def prompt_for_address(self, default):
        """Ask the user for the device address. Returns None if nothing is entered.

        Must be called before the terminal is put in raw mode.
        """
        try:
            text = input(f"Device address [{default}]: ")
        except EOFError:
            return None
        return text.strip() or None
