import socket
import logging

logger = logging.getLogger("instrterm")
logger.setLevel(logging.INFO)

PORT = 12013


class UDPHandler(logging.Handler):
    """Send log records over UDP, because the terminal itself is in use."""

    udp_address = ("127.0.0.1", PORT)

    def __init__(self):
        super().__init__()
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def emit(self, record):
        try:
            msg = self.format(record)
            bb = msg.encode()
            size = 2**10
            while bb:
                bb1 = bb[:size]
                bb = bb[size:]
                self._socket.sendto(bb1, self.udp_address)
        except Exception:
            self.handleError(record)

    def close(self):
        self._socket.close()
        super().close()


def enable_udp_logging():
    """Send the logs to ``instrterm --listen``, once."""
    if not any(isinstance(h, UDPHandler) for h in logger.handlers):
        logger.addHandler(UDPHandler())


def listen_to_logs():
    """Called from ``instrterm --listen``

    This way we can see the logs from another process, so it does not get
    mixed up with what the device prints to the terminal.
    """

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", PORT))

    try:
        while True:
            data, addr = sock.recvfrom(2**20)
            print(data.decode(errors="replace"))
    except KeyboardInterrupt:
        pass
    finally:
        sock.close()
