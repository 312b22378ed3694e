from collections import deque, namedtuple


# %% Commands

# The logical edit commands that a single input token can translate to.
ENTER = "enter"
PASTE = "paste"
BACKSPACE = "backspace"
DELETE = "delete"
HOME = "home"
END = "end"
LEFT = "left"
RIGHT = "right"
UP = "up"
DOWN = "down"
IGNORE = "ignore"
INSERT = "insert"

Command = namedtuple("Command", ["name", "text"], defaults=("",))


def key_name(token):
    """Get the symbolic name of a key token (e.g. 'f5'), or None."""
    return KEY_MAP.get(token)


def decode_token(token):
    """Classify one input token as a logical edit command.

    The token is a single character or a complete escape sequence, as
    produced by the InputTokenizer. This never fails: anything that is
    not understood results in an IGNORE command.
    """
    key = KEY_MAP.get(token)
    if key is not None:
        return Command(KEY_COMMANDS.get(key, IGNORE))
    elif len(token) == 1 and token.isprintable():
        return Command(INSERT, token)
    else:
        return Command(IGNORE)


# %% Tokenizer


class InputTokenizer:
    """A streaming splitter of terminal input into key tokens."""

    def __init__(self):
        self._key_tree = build_tree(KEY_MAP)
        self._reset()
        self._chars = deque()

    def _reset(self):
        self._branch = self._key_tree
        self._partial = ""
        self._swallowing = False

    def feed(self, text, flush=False):
        """Split the given string into tokens.

        Escape sequences can be split between multiple calls to feed.
        When flush is True, a lonely escape char is emitted right away,
        instead of waiting for new chars to arrive. A longer partial
        sequence (e.g. "\x1b[") is always kept until it is complete.
        """

        self._chars.extend(text)
        result = []

        while True:

            # Get a char
            try:
                c = self._chars.popleft()
            except IndexError:
                break  # empty

            if self._swallowing:
                # Inside an unknown CSI sequence, eat up to the final byte
                if is_csi_param(c):
                    self._partial += c
                elif is_csi_final(c):
                    result.append(self._partial + c)
                    self._reset()
                else:
                    result.append(self._partial)
                    self._reset()
                    self._chars.appendleft(c)
            elif c in self._branch:
                # Walk the tree, can be a leaf or a new branch
                node = self._branch[c]
                if isinstance(node, dict):
                    self._branch = node
                    self._partial += c
                else:
                    result.append(self._partial + c)
                    self._reset()
            elif self._branch is self._key_tree:
                # A normal character
                result.append(c)
            elif self._partial.startswith("\x1b[") and is_csi_param(c):
                self._partial += c
                self._swallowing = True
            elif (self._partial.startswith("\x1b[") and is_csi_final(c)) or (
                self._partial == "\x1bO" and c.isprintable()
            ):
                # An unknown sequence that ends with this char
                result.append(self._partial + c)
                self._reset()
            else:
                # The sequence so far may still be a key (e.g. a bare escape).
                # If not, it is passed on as-is, and decodes to IGNORE.
                result.append(self._partial)
                self._reset()
                self._chars.appendleft(c)

        # Flush a bare escape, the rest of a sequence may still be on its way
        if flush and self._partial == "\x1b":
            result.append(self._partial)
            self._reset()

        return result


def is_csi_param(c):
    return "\x20" <= c <= "\x3f"


def is_csi_final(c):
    return "\x40" <= c <= "\x7e"


def build_tree(map):
    """Build a tree from a flat map, so it can be traversed while splitting incoming chars."""
    trunk = {}
    for text, key in map.items():
        branch = trunk
        while len(text) > 1:
            char, text = text[0], text[1:]
            new_branch = branch.setdefault(char, {})
            if not isinstance(new_branch, dict):
                branch[char] = new_branch = {"": new_branch}
            branch = new_branch
        if isinstance(branch.get(text), dict):
            branch[text][""] = key
        else:
            branch[text] = key
    assert "" not in trunk  # Sanity check
    return trunk


# %% A flat mapping of vt100 input sequences to keys

# This is a subset of the map used by Textual and prompt_toolkit: the control
# characters, navigation and editing keys, and the function keys that the
# console binds to device commands.

KEY_MAP = {
    # Control keys.
    "\r": "enter",
    "\n": "ctrl+j",
    "\x03": "ctrl+c",
    "\x04": "ctrl+d",
    "\x08": "backspace",  # Control-H (Identical to '\b')
    "\x09": "tab",
    "\x16": "ctrl+v",
    "\x1b": "escape",
    # Vt220 (and Linux terminal) send this when pressing backspace.
    "\x7f": "backspace",
    "\x1b\x7f": "ctrl+w",
    # Editing keys.
    "\x1b[1~": "home",  # tmux
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",  # tmux
    "\x1b[5~": "pageup",
    "\x1b[6~": "pagedown",
    "\x1b[7~": "home",  # xrvt
    "\x1b[8~": "end",  # xrvt
    "\x1b[3;2~": "shift+delete",
    "\x1b[3;5~": "ctrl+delete",
    # Function keys.
    "\x1bOP": "f1",
    "\x1bOQ": "f2",
    "\x1bOR": "f3",
    "\x1bOS": "f4",
    "\x1b[[A": "f1",  # Linux console.
    "\x1b[[B": "f2",  # Linux console.
    "\x1b[[C": "f3",  # Linux console.
    "\x1b[[D": "f4",  # Linux console.
    "\x1b[[E": "f5",  # Linux console.
    "\x1b[11~": "f1",  # rxvt-unicode
    "\x1b[12~": "f2",  # rxvt-unicode
    "\x1b[13~": "f3",  # rxvt-unicode
    "\x1b[14~": "f4",  # rxvt-unicode
    "\x1b[15~": "f5",
    "\x1b[17~": "f6",
    "\x1b[18~": "f7",
    "\x1b[19~": "f8",
    "\x1b[20~": "f9",
    "\x1b[21~": "f10",
    "\x1b[23~": "f11",
    "\x1b[24~": "f12",
    # Arrows.
    # (Normal cursor mode).
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    # (Application cursor mode).
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOF": "end",
    "\x1bOH": "home",
    # Control + arrows.
    "\x1b[1;5A": "ctrl+up",
    "\x1b[1;5B": "ctrl+down",
    "\x1b[1;5C": "ctrl+right",
    "\x1b[1;5D": "ctrl+left",
    "\x1b[1;5F": "ctrl+end",
    "\x1b[1;5H": "ctrl+home",
    # Bracketed paste markers, the pasted text itself arrives as normal chars.
    "\x1b[200~": "paste_start",
    "\x1b[201~": "paste_end",
}


# Which keys are editing commands. All other keys are ignored by the editor.
KEY_COMMANDS = {
    "enter": ENTER,
    "ctrl+v": PASTE,
    "backspace": BACKSPACE,
    "delete": DELETE,
    "home": HOME,
    "end": END,
    "left": LEFT,
    "right": RIGHT,
    "up": UP,
    "down": DOWN,
}
