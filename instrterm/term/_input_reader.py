import os
import logging
import threading
from codecs import getincrementaldecoder

from .input_keys import InputTokenizer


logger = logging.getLogger("instrterm")

READ_SIZE = 1024


class InputReader(threading.Thread):
    """A thread that reads from stdin and feeds key tokens into the event loop."""

    def __init__(self, fd, callback, close_callback=None):
        super().__init__()
        self._fd = fd
        self._callback = callback
        self._close_callback = close_callback
        self.daemon = True

    def run(self):
        logger.info("input thread started")
        fd = self._fd
        callback = self._callback
        read = os.read
        decode_utf8 = getincrementaldecoder("utf-8")(errors="replace").decode
        feed = InputTokenizer().feed

        try:
            while True:
                bb = read(fd, READ_SIZE)
                if not bb:  # stdin is closed
                    break
                # After a short read, a lone escape does not have to wait
                # for the next key press.
                tokens = feed(decode_utf8(bb), flush=len(bb) < READ_SIZE)
                for token in tokens:
                    try:
                        callback(token)
                    except Exception as err:
                        logger.error(f"Error in handling input: {err}")
        except Exception as err:
            logger.error(f"input thread errored: {str(err)}")
        else:
            logger.info("input thread stopped")
        finally:
            if self._close_callback is not None:
                self._close_callback()
