import logging
from collections import deque

from .term.input_keys import (
    ENTER,
    PASTE,
    BACKSPACE,
    DELETE,
    HOME,
    END,
    LEFT,
    RIGHT,
    UP,
    DOWN,
    INSERT,
)


logger = logging.getLogger("instrterm")

HISTORY_SIZE = 100

# vt100 sequences used to update the line
SAVE_CURSOR = "\x1b7"
RESTORE_CURSOR = "\x1b8"
CURSOR_LEFT = "\x1b[D"
CURSOR_RIGHT = "\x1b[C"
DELETE_CHAR = "\x1b[P"
CLEAR_LINE = "\r\x1b[K"


class LineEditor:
    """An editable line, kept in sync with the terminal by writing small updates.

    The remote device has no line editing of its own, so the line is edited
    here and only submitted on enter. Rather than redrawing the whole line
    on each key, each edit writes the minimal escape sequences to make the
    visible line match the buffer again.

    Arguments:
        write (callable): called with text (and escape sequences) to display.
        submit (callable): called with each committed non-blank line.
        read_clipboard (callable): called to start reading the clipboard.
            The text must eventually be passed to ``on_paste()``, from the
            same thread that calls ``on_command()``.
    """

    def __init__(self, write, submit, read_clipboard=None):
        self._write = write
        self._submit = submit
        self._read_clipboard = read_clipboard

        self._chars = []
        self._cursor = 0
        self._history = HistoryBuffer()

        self._paste_pending = False
        self._held = deque()

    @property
    def text(self):
        return "".join(self._chars)

    @property
    def cursor(self):
        return self._cursor

    @property
    def history(self):
        return self._history

    @property
    def paste_pending(self):
        return self._paste_pending

    def reset(self):
        """Start with a fresh empty line."""
        self._chars = []
        self._cursor = 0

    def on_command(self, command):
        """Apply a command (as produced by ``decode_token()``)."""

        # While waiting for the clipboard, hold on to everything else
        if self._paste_pending:
            self._held.append(command)
            return

        name = command.name
        if name == INSERT:
            self.insert(command.text)
        elif name == BACKSPACE:
            self.backspace()
        elif name == DELETE:
            self.delete()
        elif name == HOME:
            while self._cursor > 0:
                self.cursor_left()
        elif name == END:
            while self._cursor < len(self._chars):
                self.cursor_right()
        elif name == LEFT:
            self.cursor_left()
        elif name == RIGHT:
            self.cursor_right()
        elif name == UP:
            self.replace(self._history.navigate_up())
        elif name == DOWN:
            self.replace(self._history.navigate_down())
        elif name == ENTER:
            self.enter()
        elif name == PASTE:
            self.request_paste()
        else:
            pass  # ignore

    def insert(self, text):
        """Insert text at the cursor."""
        if not text:
            return
        n = len(text)
        at_end = self._cursor == len(self._chars)
        self._chars[self._cursor : self._cursor] = text
        self._cursor += n
        if at_end:
            self._write(text)
        else:
            # Rewrite the tail, and move past the inserted text
            tail = "".join(self._chars[self._cursor - n :])
            step = CURSOR_RIGHT if n == 1 else f"\x1b[{n}C"
            self._write(SAVE_CURSOR + tail + RESTORE_CURSOR + step)

    def backspace(self):
        if self._cursor == 0:
            return
        self._cursor -= 1
        del self._chars[self._cursor]
        # The terminal shifts the tail for us
        self._write(CURSOR_LEFT + DELETE_CHAR)

    def delete(self):
        if self._cursor == len(self._chars):
            return
        del self._chars[self._cursor]
        # Rewrite the tail, and a space to erase the last char
        tail = "".join(self._chars[self._cursor :])
        self._write(SAVE_CURSOR + tail + " " + RESTORE_CURSOR)

    def cursor_left(self):
        if self._cursor > 0:
            self._cursor -= 1
            self._write(CURSOR_LEFT)

    def cursor_right(self):
        if self._cursor < len(self._chars):
            self._cursor += 1
            self._write(CURSOR_RIGHT)

    def replace(self, text):
        """Replace the whole line, e.g. with an entry from the history."""
        self._chars = list(text)
        self._cursor = len(self._chars)
        self._write(CLEAR_LINE + text)

    def redraw(self):
        """Write the whole line again, e.g. after a message was shown."""
        if not self._chars:
            return
        back = len(self._chars) - self._cursor
        step = f"\x1b[{back}D" if back else ""
        self._write(CLEAR_LINE + self.text + step)

    def enter(self):
        command = self.text
        self._write("\r\n")
        self.reset()
        if command.strip():
            self._history.append(command)
            self._submit(command)

    def request_paste(self):
        if self._read_clipboard is None:
            logger.warning("Paste requested, but there is no clipboard")
            return
        self._paste_pending = True
        logger.info("Reading clipboard")
        self._read_clipboard()

    def on_paste(self, text):
        """Apply the text from the clipboard, and then any held commands."""
        if not self._paste_pending:
            logger.warning("Got clipboard text without a paste request")
            return
        self._paste_pending = False

        # The line is a single line of printable chars
        text = " ".join((text or "").splitlines()).replace("\t", " ")
        text = "".join(c for c in text if c.isprintable())
        self.insert(text)

        # Replay. This stops when a held command starts another paste.
        while self._held and not self._paste_pending:
            self.on_command(self._held.popleft())


class HistoryBuffer:
    """A bounded list of submitted lines, with a navigation index."""

    def __init__(self, size=HISTORY_SIZE):
        self._list = deque(maxlen=size)
        self._index = 0

    def __len__(self):
        return len(self._list)

    def __iter__(self):
        return iter(self._list)

    @property
    def entries(self):
        return list(self._list)

    @property
    def index(self):
        return self._index

    def append(self, line):
        # Adjacent duplicates are dropped, the oldest entry drops out when full
        if not self._list or self._list[-1] != line:
            self._list.append(line)
        self._index = len(self._list) - 1

    def navigate_up(self):
        """Get the entry at the index, then move it back. Stops at the oldest entry."""
        if not self._list:
            return ""
        line = self._list[self._index]
        self._index = max(self._index - 1, 0)
        return line

    def navigate_down(self):
        """Move the index forward and get that entry. Gives "" past the newest entry."""
        if not self._list:
            return ""
        self._index += 1
        if self._index > len(self._list) - 1:
            self._index = len(self._list) - 1
            return ""
        return self._list[self._index]
