import random

from instrterm.prompt import LineEditor, HistoryBuffer
from instrterm.term.input_keys import Command, decode_token


class Display:
    """Collects what the editor writes."""

    def __init__(self):
        self.writes = []

    def __call__(self, text):
        self.writes.append(text)

    @property
    def text(self):
        return "".join(self.writes)

    def clear(self):
        self.writes = []


def make_editor():
    display = Display()
    submitted = []
    editor = LineEditor(display, submitted.append)
    return editor, display, submitted


def type_keys(editor, *tokens):
    for token in tokens:
        for t in [token] if token.startswith("\x1b") else list(token):
            editor.on_command(decode_token(t))


# %% Editor


def test_insert_at_end():
    editor, display, _ = make_editor()
    type_keys(editor, "abc")
    assert editor.text == "abc"
    assert editor.cursor == 3
    # Each char is just written
    assert display.writes == ["a", "b", "c"]


def test_insert_mid_line():
    editor, display, _ = make_editor()
    type_keys(editor, "ac", "\x1b[D")
    display.clear()
    type_keys(editor, "b")
    assert editor.text == "abc"
    assert editor.cursor == 2
    # Save cursor, rewrite the tail, restore, step right
    assert display.writes == ["\x1b7bc\x1b8\x1b[C"]


def test_backspace():
    editor, display, _ = make_editor()
    type_keys(editor, "abc", "\x1b[D")
    display.clear()
    type_keys(editor, "\x7f")
    assert editor.text == "ac"
    assert editor.cursor == 1
    assert display.writes == ["\x1b[D\x1b[P"]

    # At the start of the line nothing happens
    type_keys(editor, "\x7f")
    display.clear()
    type_keys(editor, "\x7f")
    assert editor.text == "c"
    assert editor.cursor == 0
    assert display.writes == []


def test_delete():
    editor, display, _ = make_editor()
    type_keys(editor, "abc", "\x1b[H")
    display.clear()
    type_keys(editor, "\x1b[3~")
    assert editor.text == "bc"
    assert editor.cursor == 0
    # Rewrite the tail plus a space to erase the ghost char
    assert display.writes == ["\x1b7bc \x1b8"]

    # At the end of the line nothing happens
    type_keys(editor, "\x1b[F")
    display.clear()
    type_keys(editor, "\x1b[3~")
    assert editor.text == "bc"
    assert display.writes == []


def test_home_end():
    editor, display, _ = make_editor()
    type_keys(editor, "abcd")
    display.clear()

    type_keys(editor, "\x1b[H")
    assert editor.cursor == 0
    assert display.text == "\x1b[D" * 4

    display.clear()
    type_keys(editor, "\x1b[F")
    assert editor.cursor == 4
    assert display.text == "\x1b[C" * 4

    # Already there
    display.clear()
    type_keys(editor, "\x1b[F")
    assert display.writes == []


def test_left_right_bounds():
    editor, display, _ = make_editor()
    type_keys(editor, "\x1b[D", "\x1b[C")
    assert editor.cursor == 0
    assert display.writes == []

    type_keys(editor, "ab", "\x1b[D")
    assert editor.cursor == 1
    type_keys(editor, "\x1b[C")
    assert editor.cursor == 2
    display.clear()
    type_keys(editor, "\x1b[C")
    assert editor.cursor == 2
    assert display.writes == []


def test_enter():
    editor, display, submitted = make_editor()
    type_keys(editor, "print(1)")
    display.clear()
    type_keys(editor, "\r")
    assert display.writes == ["\r\n"]
    assert submitted == ["print(1)"]
    assert editor.text == ""
    assert editor.cursor == 0
    assert editor.history.entries == ["print(1)"]

    # Blank lines are not submitted, but still reset the line
    type_keys(editor, "   ", "\r")
    assert submitted == ["print(1)"]
    assert editor.text == ""
    assert editor.history.entries == ["print(1)"]

    type_keys(editor, "\r")
    assert submitted == ["print(1)"]


def test_enter_mid_line():
    editor, display, submitted = make_editor()
    type_keys(editor, "abc", "\x1b[D", "\x1b[D", "\r")
    assert submitted == ["abc"]


def test_history_recall():
    editor, display, submitted = make_editor()
    type_keys(editor, "a", "\r", "b", "\r")

    display.clear()
    type_keys(editor, "\x1b[A")
    assert editor.text == "b"
    assert editor.cursor == 1
    assert display.writes == ["\r\x1b[Kb"]

    type_keys(editor, "\x1b[A")
    assert editor.text == "a"
    type_keys(editor, "\x1b[A")
    assert editor.text == "a"

    type_keys(editor, "\x1b[B")
    assert editor.text == "b"
    type_keys(editor, "\x1b[B")
    assert editor.text == ""
    assert editor.cursor == 0

    # Recalled lines can be edited and submitted
    type_keys(editor, "\x1b[A", "\x1b[A", "x", "\r")
    assert submitted == ["a", "b", "ax"]


def test_ignore():
    editor, display, _ = make_editor()
    type_keys(editor, "ab")
    display.clear()
    for token in ["\x1b[2~", "\x1b[99~", "\x1b", "\x01", "\x09"]:
        editor.on_command(decode_token(token))
    assert editor.text == "ab"
    assert editor.cursor == 2
    assert display.writes == []


def test_random_edits_keep_invariants():

    for _ in range(100):
        editor, display, _ = make_editor()
        model = []
        cursor = 0

        for _ in range(100):
            op = random.choice(["insert", "insert", "backspace", "delete", "left", "right"])
            if op == "insert":
                c = random.choice("abcxyz")
                editor.on_command(Command("insert", c))
                model.insert(cursor, c)
                cursor += 1
            elif op == "backspace":
                editor.on_command(Command("backspace"))
                if cursor > 0:
                    cursor -= 1
                    model.pop(cursor)
            elif op == "delete":
                editor.on_command(Command("delete"))
                if cursor < len(model):
                    model.pop(cursor)
            elif op == "left":
                editor.on_command(Command("left"))
                cursor = max(cursor - 1, 0)
            elif op == "right":
                editor.on_command(Command("right"))
                cursor = min(cursor + 1, len(model))

            assert 0 <= editor.cursor <= len(editor.text)
            assert editor.cursor == cursor
            assert editor.text == "".join(model)


# %% Paste


def make_paste_editor():
    display = Display()
    submitted = []
    requests = []
    editor = LineEditor(display, submitted.append, lambda: requests.append(1))
    return editor, display, requests


def test_paste():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "ad", "\x1b[D")

    type_keys(editor, "\x16")
    assert requests == [1]
    assert editor.paste_pending

    display.clear()
    editor.on_paste("bc")
    assert not editor.paste_pending
    assert editor.text == "abcd"
    assert editor.cursor == 3
    assert display.writes == ["\x1b7bcd\x1b8\x1b[2C"]


def test_paste_at_end():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "a", "\x16")
    display.clear()
    editor.on_paste("bcd")
    assert editor.text == "abcd"
    assert editor.cursor == 4
    assert display.writes == ["bcd"]


def test_paste_empty():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "a", "\x16")
    display.clear()
    editor.on_paste("")
    assert editor.text == "a"
    assert not editor.paste_pending
    assert display.writes == []


def test_paste_multiline():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "\x16")
    editor.on_paste("x = 1\r\ny = 2\n")
    assert editor.text == "x = 1 y = 2"


def test_paste_control_chars():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "\x16")
    display.clear()
    editor.on_paste("a\tb\x1b[2J\x07c")
    # Tabs become spaces, other control chars are dropped
    assert editor.text == "a b[2Jc"
    assert editor.cursor == len(editor.text)
    assert display.text == "a b[2Jc"
    assert "\x1b" not in display.text


def test_redraw():
    editor, display, submitted = make_editor()
    type_keys(editor, "abcd", "\x1b[D", "\x1b[D")
    display.clear()
    editor.redraw()
    assert display.text == "\r\x1b[Kabcd\x1b[2D"
    assert editor.cursor == 2

    type_keys(editor, "\x1b[F")
    display.clear()
    editor.redraw()
    assert display.text == "\r\x1b[Kabcd"

    # Nothing to redraw on an empty line
    editor, display, submitted = make_editor()
    editor.redraw()
    assert display.writes == []


def test_paste_holds_keys():
    editor, display, requests = make_paste_editor()
    type_keys(editor, "\x16")

    # Keys that arrive during the paste are applied after it, in order
    type_keys(editor, "x", "\x1b[D", "y")
    assert editor.text == ""

    # Another paste does not start while one is pending
    type_keys(editor, "\x16", "z")
    assert requests == [1]

    editor.on_paste("ab")
    # The held paste started a new request, "z" is still held
    assert editor.text == "abyx"
    assert requests == [1, 1]
    assert editor.paste_pending

    editor.on_paste("!")
    assert editor.text == "aby!zx"
    assert not editor.paste_pending


def test_paste_without_clipboard():
    editor, display, _ = make_editor()
    type_keys(editor, "\x16", "a")
    assert not editor.paste_pending
    assert editor.text == "a"


# %% History


def test_history_duplicates():
    history = HistoryBuffer()
    history.append("a")
    history.append("a")
    assert history.entries == ["a"]
    history.append("b")
    history.append("a")
    assert history.entries == ["a", "b", "a"]


def test_history_capacity():
    history = HistoryBuffer()
    for i in range(101):
        history.append(f"line{i}")
    assert len(history) == 100
    assert history.entries[0] == "line1"
    assert history.entries[-1] == "line100"
    assert list(history) == [f"line{i}" for i in range(1, 101)]


def test_history_navigate_up():
    history = HistoryBuffer()
    assert history.navigate_up() == ""

    history.append("a")
    history.append("b")
    assert history.navigate_up() == "b"
    assert history.navigate_up() == "a"
    assert history.navigate_up() == "a"
    assert history.index == 0


def test_history_navigate_down():
    history = HistoryBuffer()
    assert history.navigate_down() == ""

    history.append("a")
    history.append("b")
    # Past the newest entry
    assert history.navigate_down() == ""
    assert history.index == 1

    history.navigate_up()
    history.navigate_up()
    assert history.navigate_down() == "b"
    assert history.navigate_down() == ""


def test_history_append_resets_index():
    history = HistoryBuffer()
    for line in "abc":
        history.append(line)
    history.navigate_up()
    history.navigate_up()
    history.append("d")
    assert history.navigate_up() == "d"

    # Also when the entry is a duplicate
    history.navigate_up()
    history.navigate_up()
    history.append("d")
    assert history.navigate_up() == "d"


if __name__ == "__main__":
    for name, func in list(globals().items()):
        if name.startswith("test_"):
            func()
