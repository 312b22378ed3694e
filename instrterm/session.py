"""
The connection to the device: a raw TCP socket to the script interpreter on
the instrument.

The socket is opened and read in separate threads, but these only post
events to the loop. The session state is only changed from the loop, via
the ``on_xx()`` methods.
"""

import socket
import logging
import threading
from codecs import getincrementaldecoder

from .loop import SocketConnected, SocketFailed, SocketData, SocketClosed


logger = logging.getLogger("instrterm")

PORT = 5025
DEFAULT_ADDRESS = "192.168.100.2"
ENCODING = "utf-8"
RECV_SIZE = 4096

# Connection states
DISCONNECTED = "disconnected"
CONNECTING = "connecting"
CONNECTED = "connected"

# Commands understood by the device
SCRIPT_BEGIN = "loadandrunscript"
SCRIPT_END = "endscript"
INIT_COMMAND = "localnode.showerrors=1"
ERROR_DRAIN_SCRIPT = (
    "if errorqueue.count == 0 then"
    ' print("no errors")'
    " else"
    " for _ = 1, errorqueue.count do"
    " local code, message, severity, errorNode = errorqueue.next()"
    " print(code, message)"
    " end"
    " errorqueue.clear()"
    " end"
)


class DeviceError(Exception):
    """Base class for errors in talking to the device."""


class NotConnected(DeviceError):
    """Raised when sending while the session is not connected."""


class ConnectFailure(DeviceError):
    """Reported when the socket to the device cannot be opened."""


def normalize_newlines(text, newline="\r\n"):
    """Turn CR, LF and CRLF line endings all into the given newline."""
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", newline)


class NewlineNormalizer:
    """Normalize newlines over a stream of chunks.

    A CRLF that is split over two chunks counts as one line ending.
    """

    def __init__(self, newline="\r\n"):
        self._newline = newline
        self._after_cr = False

    def feed(self, text):
        if self._after_cr and text.startswith("\n"):
            text = text[1:]
        self._after_cr = text.endswith("\r")
        return normalize_newlines(text, self._newline)


def close_socket(sock):
    try:
        # Also wakes up a thread that is blocked in recv()
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass  # not connected (anymore)
    sock.close()


class SocketReader(threading.Thread):
    """A thread that reads from the socket and posts the data to the loop."""

    def __init__(self, sock, generation, post):
        super().__init__()
        self._sock = sock
        self._generation = generation
        self._post = post
        self.daemon = True

    def run(self):
        logger.info("socket thread started")
        generation = self._generation
        try:
            while True:
                bb = self._sock.recv(RECV_SIZE)
                if not bb:  # closed by the device
                    break
                self._post(SocketData(generation, bb))
        except OSError as err:
            logger.info(f"socket thread stopped: {err}")
        else:
            logger.info("socket thread stopped")
        finally:
            self._post(SocketClosed(generation))


class DeviceSession:
    """A session with the device.

    Arguments:
        display (callable): called with normalized text received from the device.
        post (callable): called (from other threads) with events for the loop.
        notify (callable): called with ``(message, level)`` to inform the user.
        port (int): the TCP port of the device.
        line_ending (str): appended by ``send_line()``.
        create_connection (callable): opens the socket, like ``socket.create_connection``.
    """

    def __init__(
        self,
        display,
        post,
        notify=None,
        port=PORT,
        line_ending="\n",
        create_connection=socket.create_connection,
    ):
        self._display = display
        self._post = post
        self._notify = notify or (lambda message, level="info": None)
        self._port = port
        self._line_ending = line_ending
        self._create_connection = create_connection

        self._state = DISCONNECTED
        self._address = None
        self._sock = None
        # Bumped for each connect and disconnect, so that events from an
        # older socket can be recognized and dropped.
        self._generation = 0

        self._reset_decoding()

    def _reset_decoding(self):
        self._decode = getincrementaldecoder(ENCODING)(errors="replace").decode
        self._normalizer = NewlineNormalizer()

    @property
    def state(self):
        return self._state

    @property
    def is_connected(self):
        return self._state == CONNECTED

    @property
    def address(self):
        return self._address

    @property
    def port(self):
        return self._port

    @property
    def line_ending(self):
        return self._line_ending

    @property
    def generation(self):
        return self._generation

    # %% Connection lifecycle

    def connect(self, address):
        """Connect to the device at the given address.

        An existing connection is closed first. The socket is opened in a
        thread; the result arrives at ``on_connected()`` or
        ``on_connect_failed()``.
        """
        self.disconnect()
        self._generation += 1
        self._address = address
        self._state = CONNECTING
        logger.info(f"Connecting to {address}:{self._port}")
        thread = threading.Thread(
            target=self._open, args=(address, self._generation), daemon=True
        )
        thread.start()

    def _open(self, address, generation):
        try:
            sock = self._create_connection((address, self._port))
        except OSError as err:
            self._post(SocketFailed(generation, err))
        else:
            self._post(SocketConnected(generation, sock))

    def on_connected(self, sock, generation):
        if generation != self._generation or self._state != CONNECTING:
            # Connect was cancelled or superseded while the socket was opening
            logger.info("Closing socket of a cancelled connect")
            close_socket(sock)
            return
        self._sock = sock
        self._state = CONNECTED
        self._reset_decoding()
        SocketReader(sock, generation, self._post).start()
        logger.info(f"Connected to {self._address}")
        self._notify(f"Connected to {self._address}.", "info")
        # Let the device report errors as they happen
        self.send_line(INIT_COMMAND)

    def on_connect_failed(self, error, generation):
        if generation != self._generation or self._state != CONNECTING:
            return
        self._state = DISCONNECTED
        failure = ConnectFailure(
            f"Could not connect to {self._address}:{self._port}: {error}"
        )
        logger.warning(str(failure))
        self._notify(str(failure), "warning")

    def disconnect(self):
        """Close the connection (if any). Safe to call at any time."""
        was_state = self._state
        sock, self._sock = self._sock, None
        self._state = DISCONNECTED
        self._generation += 1
        if sock is not None:
            close_socket(sock)
        if was_state != DISCONNECTED:
            logger.info(f"Disconnected from {self._address}")
            self._notify(f"Disconnected from {self._address}.", "info")

    def on_close(self, generation=None):
        """The socket was closed (by the device, or due to an error)."""
        if generation is not None and generation != self._generation:
            return
        if self._state == CONNECTED:
            self.disconnect()

    def on_data(self, data, generation=None):
        """Display data received from the device. Returns the displayed text."""
        if generation is not None and generation != self._generation:
            return ""
        text = self._normalizer.feed(self._decode(data))
        if text:
            self._display(text)
        return text

    # %% Sending

    def send(self, text):
        """Send text to the device as-is."""
        if self._state != CONNECTED:
            raise NotConnected("Device is not connected!")
        logger.debug(f"send {text!r}")
        try:
            self._sock.sendall(text.encode(ENCODING))
        except OSError as err:
            logger.warning(f"Error sending to {self._address}: {err}")
            self.disconnect()
            raise NotConnected(f"Connection to {self._address} was lost.") from err

    def send_line(self, text):
        self.send(text + self._line_ending)

    def run_script(self, source):
        """Load the given script source onto the device and run it."""
        if self._state != CONNECTED:
            raise NotConnected("Device is not connected!")
        logger.info(f"Sending script of {len(source)} chars")
        self.send_line(SCRIPT_BEGIN)
        self.send(source)
        self.send_line(SCRIPT_END)

    def drain_error_queue(self):
        """Let the device print (and clear) its queued errors."""
        self.send_line(ERROR_DRAIN_SCRIPT)
