"""
Line parser for the UCI protocol.

Turns one raw input line into a ``ParsedCommand``: the command name plus an
immutable mapping from keyword to the free text that followed it. Which
tokens count as keywords is decided per command by ``COMMAND_SCHEMA``, so
"moves" is a keyword after "position" but an ordinary value token anywhere
else.

Examples:
    "position startpos moves e2e4 e7e5"
        -> ParsedCommand("position", {"startpos": "", "moves": "e2e4 e7e5"})
    "go wtime 1000   btime 2000"
        -> ParsedCommand("go", {"wtime": "1000", "btime": "2000"})

Multi-token values are re-joined with exactly one space, whatever the
spacing was in the line.

"setoption" is the exception: its value is unstructured text that may
itself contain keyword-looking words, so the generic scanner is bypassed
and the trimmed remainder of the line goes to ``parse_setoption``.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from uci.errors import GrammarError

# ---------------------------------------------------------------------------
# Command schema
# ---------------------------------------------------------------------------
# Every command the dispatcher accepts has an entry here, even when it takes
# no keywords at all.

COMMAND_SCHEMA: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "uci": frozenset(),
        "isready": frozenset(),
        "setoption": frozenset({"context", "name", "value"}),
        "ucinewgame": frozenset(),
        "position": frozenset({"fen", "startpos", "moves"}),
        "go": frozenset(
            {
                "infinite",
                "wtime",
                "btime",
                "winc",
                "binc",
                "movestogo",
                "depth",
                "mate",
                "nodes",
                "movetime",
                "searchmoves",
                "ponder",
            }
        ),
        "stop": frozenset(),
        "ponderhit": frozenset(),
        "quit": frozenset(),
        "xyzzy": frozenset(),
        "fen": frozenset(),
    }
)

# Key under which the raw "setoption" remainder is carried to the dispatcher.
SETOPTION_ARGS_KEY = "args"

_NAME_TOKEN = "name"
_VALUE_TOKEN = "value"
_CONTEXT_TOKEN = "context"


@dataclass(frozen=True)
class ParsedCommand:
    """A single parsed input line: command name and keyword -> text map."""

    name: str
    params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def has(self, key: str) -> bool:
        return key in self.params

    def get(self, key: str) -> str:
        """Return the text after ``key``, or "" when the keyword is absent."""
        return self.params.get(key, "")


@dataclass(frozen=True)
class SetOptionArgs:
    """Result of parsing the arguments of a "setoption" line."""

    name: str
    value: str
    context: str | None = None


# ---------------------------------------------------------------------------
# Generic tokenizer
# ---------------------------------------------------------------------------


def parse_command(line: str) -> ParsedCommand | None:
    """
    Parse one protocol line.

    Args:
        line: Raw input line, with or without its trailing newline.

    Returns:
        The parsed command, or None for a blank line (the caller treats
        that as a no-op, not an error).

    Raises:
        GrammarError: Unknown command name, or a value token that appears
                      before any keyword of the command.
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return None

    name = parts[0]
    rest = parts[1] if len(parts) > 1 else ""

    keywords = COMMAND_SCHEMA.get(name)
    if keywords is None:
        raise GrammarError(f"Unknown command: {name}")

    if name == "setoption":
        return ParsedCommand(name, MappingProxyType({SETOPTION_ARGS_KEY: rest.strip()}))

    return ParsedCommand(name, MappingProxyType(_scan_keywords(name, keywords, rest)))


def _scan_keywords(command: str, keywords: frozenset[str], text: str) -> dict[str, str]:
    """
    Split ``text`` into keyword -> value slots.

    A keyword opens its slot (resetting it if the keyword repeats). Any
    other token is appended to the open slot, separated by one space from
    the previous token in that slot.
    """
    builder: dict[str, list[str]] = {}
    current: list[str] | None = None

    for token in text.split():
        if token in keywords:
            current = builder[token] = []
        elif current is None:
            raise GrammarError(f"Unexpected token: {token} in command {command}")
        else:
            current.append(token)

    return {key: " ".join(tokens) for key, tokens in builder.items()}


# ---------------------------------------------------------------------------
# setoption sub-parser
# ---------------------------------------------------------------------------


def find_bounded_keyword(text: str, keyword: str, start: int = 0, last: bool = False) -> int:
    """
    Find a whitespace-bounded occurrence of ``keyword`` in ``text``.

    "Whitespace-bounded" means the match is preceded by start-of-text or
    whitespace and followed by end-of-text or whitespace, so "context" does
    not match inside "contextual".

    Args:
        text:    The text to search.
        keyword: The literal token to look for.
        start:   Matches must begin at or after this index.
        last:    Return the right-most match instead of the left-most one.

    Returns:
        Index of the match, or -1 when there is none.
    """
    if last:
        end = len(text)
        while True:
            pos = text.rfind(keyword, start, end)
            if pos < 0:
                return -1
            if _is_bounded(text, pos, len(keyword)):
                return pos
            end = pos + len(keyword) - 1

    pos = text.find(keyword, start)
    while pos >= 0:
        if _is_bounded(text, pos, len(keyword)):
            return pos
        pos = text.find(keyword, pos + 1)
    return -1


def _is_bounded(text: str, pos: int, length: int) -> bool:
    before = pos == 0 or text[pos - 1].isspace()
    after = pos + length == len(text) or text[pos + length].isspace()
    return before and after


def parse_setoption(args: str) -> SetOptionArgs:
    """
    Parse ``name <NAME> value <VALUE> [context <CONTEXT>]``.

    The option name ends at the first whitespace-bounded "value". The value
    ends at the LAST whitespace-bounded "context" after it, so a value may
    itself contain the word "context". Only the ends of each field are
    trimmed; whitespace inside a value is kept exactly as sent.

    Raises:
        GrammarError: Missing "name" or "value", or an empty name, value or
                      context.
    """
    text = args.strip()

    if not (text.startswith(_NAME_TOKEN) and len(text) > len(_NAME_TOKEN)
            and text[len(_NAME_TOKEN)].isspace()):
        raise GrammarError("Malformed setoption (expected 'name')")
    text = text[len(_NAME_TOKEN):].strip()

    value_pos = find_bounded_keyword(text, _VALUE_TOKEN)
    if value_pos < 0:
        raise GrammarError("Malformed setoption (missing 'value')")

    name = text[:value_pos].strip()
    if not name:
        raise GrammarError("Empty option name")

    text = text[value_pos + len(_VALUE_TOKEN):].strip()

    context = None
    context_pos = find_bounded_keyword(text, _CONTEXT_TOKEN, last=True)
    if context_pos >= 0:
        value = text[:context_pos].strip()
        context = text[context_pos + len(_CONTEXT_TOKEN):].strip()
        if not context:
            raise GrammarError(f"Empty context for '{name}'")
    else:
        value = text

    if not value:
        raise GrammarError("Empty option value")

    return SetOptionArgs(name=name, value=value, context=context)
