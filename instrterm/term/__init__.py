"""
Utilities to work with the terminal and its input sequences.

This is inspired by the heart of e.g. prompt_toolkit and Textual. We use a
sensible subset of vt100, which works on Unix terminals, on Windows 10 and
up, and in xterm.js based terminals.

We don't use curses, because that's Unix only. There are a few parts where
the code for Unix and Windows needs to differ. This is why the terminal
context has a base class, with implementations for Unix and Windows.
"""

from ._context import TerminalContext  # noqa
from ._input_reader import InputReader  # noqa
from .input_keys import InputTokenizer, Command, decode_token, key_name  # noqa
