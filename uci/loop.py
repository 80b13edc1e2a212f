"""
UCI (Universal Chess Interface) protocol loop.

UCI is the standard text-based protocol that lets chess GUIs and testing
tools (like cutechess-cli) talk to chess engines. The engine reads one
command per line from stdin and writes responses to stdout.

    GUI -> Engine: uci, isready, setoption, ucinewgame, position, go, stop,
                   ponderhit, quit (plus "fen" and "xyzzy")
    Engine -> GUI: id, option, uciok, readyok, info, bestmove

Processing a line:
    1. ``uci.parser.parse_command`` splits it into (command, params).
    2. ``UciLoop.dispatch_command`` converts params into a typed request and
       calls the controller.
    3. The controller answers later, from its worker thread, through the
       registered responder.

Error handling:
    A malformed line raises ``UciError`` (grammar, semantic or numeric);
    option-store and controller failures propagate unchanged. ``UciLoop``
    itself never swallows them. ``run_uci_loop`` catches them per line,
    reports "error <message>", and keeps reading, so one bad command never
    costs a game.

Critical rule: NEVER print to stdout except for protocol responses. Logging
goes to stderr or to --logfile.
"""

import argparse
import logging
import random
import re
import sys
from typing import Iterable, Sequence, TextIO

import uci
from engine import controller as engine_controller
from engine.constants import INT32_MAX, INT32_MIN, STARTPOS_FEN
from engine.controller import EngineController, EngineError
from engine.options import OptionError, OptionsParser
from uci.errors import ErrorKind, GrammarError, NumericValueError, SemanticError, UciError
from uci.parser import SETOPTION_ARGS_KEY, ParsedCommand, parse_command, parse_setoption
from uci.requests import GoParams, PositionRequest, SetOptionRequest
from uci.responder import StdoutUciResponder, StringUciResponder

_log = logging.getLogger(__name__)

# Failures reported per line by run_uci_loop: our own plus the delegated ones.
DELEGATED_ERRORS = (OptionError, EngineError)
LINE_ERRORS = (UciError,) + DELEGATED_ERRORS

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

_GO_NUMERIC_KEYS = (
    "wtime",
    "btime",
    "winc",
    "binc",
    "movestogo",
    "depth",
    "mate",
    "nodes",
    "movetime",
)


def error_kind(exc: Exception) -> ErrorKind:
    """Classify a line failure for reporting."""
    if isinstance(exc, UciError):
        return exc.kind
    return ErrorKind.DELEGATED


# ---------------------------------------------------------------------------
# Parameter conversion
# ---------------------------------------------------------------------------


def get_numeric(command: ParsedCommand, key: str) -> int:
    """
    Parse the value of ``key`` as a base-10, 32-bit signed integer.

    Raises:
        NumericValueError: "expected value after <key>" for an empty value,
                           "invalid value <text>" for non-numeric text,
                           "out of range value <text>" beyond 32 bits.
    """
    text = command.get(key)
    if not text:
        raise NumericValueError(f"expected value after {key}")
    if not _INTEGER_RE.fullmatch(text):
        raise NumericValueError(f"invalid value {text}")
    value = int(text)
    if not INT32_MIN <= value <= INT32_MAX:
        raise NumericValueError(f"out of range value {text}")
    return value


def get_flag(command: ParsedCommand, key: str) -> bool:
    """A value-less keyword: present or not, never followed by text."""
    if not command.has(key):
        return False
    if command.get(key):
        raise SemanticError(f"Unexpected token {command.get(key)}")
    return True


def build_go_params(command: ParsedCommand) -> GoParams:
    fields: dict[str, object] = {
        "infinite": get_flag(command, "infinite"),
        "ponder": get_flag(command, "ponder"),
    }
    if command.has("searchmoves"):
        fields["searchmoves"] = tuple(command.get("searchmoves").split())
    for key in _GO_NUMERIC_KEYS:
        if command.has(key):
            fields[key] = get_numeric(command, key)
    return GoParams(**fields)


def build_position_request(command: ParsedCommand) -> PositionRequest:
    if command.has("fen") == command.has("startpos"):
        raise SemanticError("Position requires either fen or startpos")
    return PositionRequest(
        fen=command.get("fen") or STARTPOS_FEN,
        moves=tuple(command.get("moves").split()),
    )


def build_setoption_request(command: ParsedCommand) -> SetOptionRequest:
    args = parse_setoption(command.get(SETOPTION_ARGS_KEY))
    return SetOptionRequest(name=args.name, value=args.value, context=args.context)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class UciLoop:
    """
    Dispatches parsed commands to the controller.

    Holds no protocol state of its own: just the responder, the option store
    and the controller. The responder is registered with the controller for
    the lifetime of the loop; use the loop as a context manager (or call
    ``close``) to unregister it.
    """

    def __init__(
        self,
        responder: StringUciResponder,
        options: OptionsParser,
        engine: EngineController,
    ) -> None:
        self.responder = responder
        self.options = options
        self.engine = engine
        self.engine.register_uci_responder(responder)

    def close(self) -> None:
        self.engine.unregister_uci_responder(self.responder)

    def __enter__(self) -> "UciLoop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def process_line(self, line: str) -> bool:
        """
        Parse and dispatch one input line.

        Returns:
            False after "quit", True otherwise (including blank lines).

        Raises:
            UciError, OptionError, EngineError: The line was rejected.
        """
        command = parse_command(line)
        if command is None:
            return True
        return self.dispatch_command(command)

    def dispatch_command(self, command: ParsedCommand) -> bool:
        name = command.name
        if name == "uci":
            self.responder.send_id()
            self.responder.send_raw_responses(self.options.list_options_uci() + ["uciok"])
        elif name == "isready":
            self.engine.ensure_ready()
            self.responder.send_raw_response("readyok")
        elif name == "setoption":
            request = build_setoption_request(command)
            self.options.set_uci_option(request.name, request.value, request.context)
        elif name == "ucinewgame":
            self.engine.new_game()
        elif name == "position":
            request = build_position_request(command)
            self.engine.set_position(request.fen, request.moves)
        elif name == "go":
            self.engine.go(build_go_params(command))
        elif name == "stop":
            self.engine.stop()
        elif name == "ponderhit":
            self.engine.ponder_hit()
        elif name == "fen":
            self.responder.send_raw_response(f"fen {self.engine.current_fen()}")
        elif name == "xyzzy":
            self.responder.send_raw_response("Nothing happens.")
        elif name == "quit":
            return False
        else:
            raise GrammarError(f"Unknown command: {name}")
        return True


# ---------------------------------------------------------------------------
# stdin loop
# ---------------------------------------------------------------------------


def run_uci_loop(loop: UciLoop, lines: Iterable[str] | None = None) -> None:
    """
    Feed input lines to ``loop`` until "quit" or end of input.

    Each line is processed in isolation: a rejected line is reported as
    "error <message>" and logged, and the next line is read as usual.

    Args:
        loop:  The dispatcher.
        lines: Input lines; stdin when not given.
    """
    source = sys.stdin if lines is None else lines
    for raw_line in source:
        line = raw_line.rstrip("\r\n")
        _log.debug(">> %s", line)
        try:
            if not loop.process_line(line):
                break
        except LINE_ERRORS as exc:
            _log.warning("Rejected %r (%s): %s", line, error_kind(exc).value, exc)
            loop.responder.send_raw_response(f"error {exc}")
        except Exception as exc:
            _log.exception("Unhandled error for line %r", line)
            loop.responder.send_raw_response(f"error {exc}")

    # Let a running search deliver its bestmove before we return.
    loop.engine.stop()


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


def build_options(responder: StringUciResponder) -> OptionsParser:
    options = OptionsParser()
    responder.populate_params(options)
    engine_controller.populate_params(options)
    return options


def _configure_logging(logfile: str | None, verbose: bool) -> None:
    handler: logging.Handler
    if logfile:
        handler = logging.FileHandler(logfile, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, handlers=[handler])


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """
    Console entry point: parse flags, configure logging, run the loop.

    Every declared option also gets a "--<flag> VALUE" command-line switch,
    applied before the first line is read.

    Returns:
        Process exit code.
    """
    responder = StdoutUciResponder(stdout)
    options = build_options(responder)

    parser = argparse.ArgumentParser(prog="chess-uci", description="UCI chess engine.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {uci.__version__}")
    parser.add_argument("--logfile", help="Write the log here instead of stderr.")
    parser.add_argument("--verbose", action="store_true", help="Log every protocol line.")
    parser.add_argument("--seed", type=int, help="Seed for move sampling.")
    for option in options.options():
        parser.add_argument(
            f"--{option.id.long_flag}",
            dest=f"opt:{option.id.long_flag}",
            metavar="VALUE",
            help=f"{option.id.help_text} (UCI: {option.id.uci_name})",
        )
    args = parser.parse_args(argv)

    flags = {
        key.split(":", 1)[1]: value
        for key, value in vars(args).items()
        if key.startswith("opt:")
    }
    try:
        options.set_from_flags(flags)
    except OptionError as exc:
        parser.error(str(exc))

    _configure_logging(args.logfile, args.verbose)

    engine = EngineController(options, rng=random.Random(args.seed))
    with UciLoop(responder, options, engine) as loop:
        run_uci_loop(loop, stdin)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
