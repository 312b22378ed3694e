import socket
import logging

from .loop import (
    KeyToken,
    SocketConnected,
    SocketFailed,
    SocketData,
    SocketClosed,
    PasteCompleted,
)
from .prompt import LineEditor
from .session import DeviceSession, NotConnected, PORT, DEFAULT_ADDRESS
from .term.input_keys import ENTER, decode_token, key_name


logger = logging.getLogger("instrterm")


# Keys that trigger console commands instead of editing the line
HOST_KEYS = {
    "f5": "submit_script",
    "f6": "request_error_drain",
    "f7": "connect",
    "f8": "disconnect",
    "f9": "change_address",
    "ctrl+c": "quit",
    "ctrl+d": "quit",
}

HELP = (
    "F5: run script   F6: print errors   F7: reconnect   F8: disconnect   "
    "F9: change address   Ctrl+C: quit"
)


class DeviceConsole:
    """A console to the device: the line editor and the device session,
    driven by the events of one loop.

    The host provides ``write_to_display(text)``, ``show_message(text, level)``,
    ``read_clipboard_text(callback)`` and ``get_active_document_text()``.
    """

    def __init__(
        self,
        host,
        loop,
        address=DEFAULT_ADDRESS,
        port=PORT,
        line_ending="\n",
        create_connection=socket.create_connection,
    ):
        self._host = host
        self._loop = loop
        self._address = address
        self._address_editor = None

        self.session = DeviceSession(
            host.write_to_display,
            loop.post,
            notify=self._notify,
            port=port,
            line_ending=line_ending,
            create_connection=create_connection,
        )
        self.editor = LineEditor(
            host.write_to_display, self._submit_line, self._read_clipboard
        )

        session = self.session
        loop.register(KeyToken, lambda e: self.on_key_token(e.token))
        loop.register(SocketData, lambda e: self.on_socket_data(e.data, e.generation))
        loop.register(SocketClosed, lambda e: self.on_socket_closed(e.generation))
        loop.register(SocketConnected, lambda e: session.on_connected(e.sock, e.generation))
        loop.register(SocketFailed, lambda e: session.on_connect_failed(e.error, e.generation))
        loop.register(PasteCompleted, lambda e: self.editor.on_paste(e.text))

    @property
    def address(self):
        return self._address

    @property
    def entering_address(self):
        return self._address_editor is not None

    def _notify(self, text, level="info"):
        # The message ends up below the line being edited, so write that again
        self._host.show_message(text, level)
        (self._address_editor or self.editor).redraw()

    def _warn(self, err):
        logger.warning(str(err))
        self._notify(str(err), "warning")

    # %% Input

    def on_key_token(self, token):
        action = HOST_KEYS.get(key_name(token))
        if self._address_editor is not None:
            self._on_address_token(token, action)
        elif action:
            getattr(self, action)()
        else:
            self.editor.on_command(decode_token(token))

    def _on_address_token(self, token, action):
        if action == "quit":
            self.quit()
        elif key_name(token) == "escape":
            self._finish_address_entry(cancel=True)
        elif action:
            pass  # other commands are ignored while entering an address
        else:
            command = decode_token(token)
            if command.name == ENTER:
                self._finish_address_entry()
            else:
                self._address_editor.on_command(command)

    def _submit_line(self, line):
        try:
            self.session.send_line(line)
        except NotConnected as err:
            self._warn(err)

    def _read_clipboard(self):
        post = self._loop.post
        self._host.read_clipboard_text(lambda text: post(PasteCompleted(text)))

    # %% Socket events

    def on_socket_data(self, data, generation=None):
        self.session.on_data(data, generation)

    def on_socket_closed(self, generation=None):
        self.session.on_close(generation)

    # %% Commands

    def connect(self, address=None):
        """(Re)connect to the device, at the given or the current address."""
        if address:
            self._address = address
        self.editor.reset()
        self.session.connect(self._address)

    def disconnect(self):
        self.session.disconnect()

    def change_address(self):
        """Let the user enter a new device address, and connect to it.

        The address is typed on a line of its own. Enter with an empty line
        or escape keeps the current address.
        """
        if self._address_editor is not None:
            return
        self._address_editor = LineEditor(self._host.write_to_display, lambda line: None)
        self._notify(f"Enter the device address (empty keeps {self._address})")

    def _finish_address_entry(self, cancel=False):
        address = "" if cancel else self._address_editor.text.strip()
        self._address_editor = None
        if address:
            logger.info(f"Device address changed to {address}")
            self.connect(address)
        else:
            self._notify(f"Address unchanged: {self._address}")

    def submit_script(self, source=None):
        """Load and run a script. By default the host's active document is used."""
        if not self.session.is_connected:
            self._warn(NotConnected("Device is not connected!"))
            return
        if source is None:
            try:
                source = self._host.get_active_document_text()
            except OSError as err:
                self._warn(f"Could not read script: {err}")
                return
            if source is None:
                self._warn("There is no script to run.")
                return
        # The end marker follows the source, so complete its last line
        if source and not source.endswith(("\r", "\n")):
            source += self.session.line_ending
        self._notify("Execute script")
        try:
            self.session.run_script(source)
        except NotConnected as err:
            self._warn(err)
        else:
            self._notify("Script sent")

    def request_error_drain(self):
        try:
            self.session.drain_error_queue()
        except NotConnected as err:
            self._warn(err)
        else:
            self._notify("Errors printed")

    def quit(self):
        self._loop.stop()
