import sys
import logging

from .console import DeviceConsole, HELP
from .host import TerminalHost
from .loop import EventLoop, KeyToken
from .session import PORT, DEFAULT_ADDRESS
from .term import TerminalContext, InputReader


logger = logging.getLogger("instrterm")


def main(address=None, port=PORT, script_path=None, line_ending="\n"):
    """Run the device console in this terminal, until the user quits."""

    host = TerminalHost(sys.stdout, script_path=script_path)

    # Ask for the address while the terminal is still in normal mode
    if not address:
        address = host.prompt_for_address(DEFAULT_ADDRESS) or DEFAULT_ADDRESS

    loop = EventLoop()
    console = DeviceConsole(
        host, loop, address=address, port=port, line_ending=line_ending
    )

    with TerminalContext():

        # Read from real stdin, into the loop
        input_reader = InputReader(
            sys.__stdin__.fileno(),
            lambda token: loop.post(KeyToken(token)),
            loop.stop,
        )
        input_reader.start()

        host.show_message(HELP, "info")
        console.connect()

        try:
            loop.run()
        except KeyboardInterrupt:
            pass
        finally:
            console.disconnect()
            host.write_to_display("\r\n")
