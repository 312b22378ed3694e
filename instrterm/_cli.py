import sys
import argparse

from ._main import main
from .session import PORT
from .utils import enable_udp_logging, listen_to_logs


def get_parser():
    parser = argparse.ArgumentParser(
        prog="instrterm",
        description="An interactive terminal to the script interpreter of an instrument.",
    )
    parser.add_argument(
        "address", nargs="?", help="the address of the device (prompted for if omitted)"
    )
    parser.add_argument("--port", type=int, default=PORT, help="the TCP port of the device")
    parser.add_argument("--script", metavar="PATH", help="the script file to run with F5")
    parser.add_argument(
        "--crlf", action="store_true", help="end lines sent to the device with CRLF instead of LF"
    )
    parser.add_argument(
        "--listen", action="store_true", help="show the logs of a running instrterm"
    )
    parser.add_argument("--version", action="store_true", help="show the version and exit")
    return parser


def cli(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    args = get_parser().parse_args(argv)

    if args.version:
        from . import __version__

        print("instrterm", __version__)
    elif args.listen:
        listen_to_logs()
    else:
        enable_udp_logging()
        main(
            address=args.address,
            port=args.port,
            script_path=args.script,
            line_ending="\r\n" if args.crlf else "\n",
        )
