"""
Option store: typed, UCI-visible engine options.

Options are declared once at startup with an ``OptionId`` (command-line flag,
UCI name, help text) and a typed option object. The store then:

    - advertises them in reply to "uci" (``list_options_uci``),
    - applies "setoption" commands (``set_uci_option``),
    - applies command-line flags before the loop starts (``set_from_flags``),
    - answers reads from the controller and the responder (``get``).

Contexts:
    "setoption ... context <C>" stores the value in a named override layer
    instead of the root. ``get(option_id, context=C)`` returns the override
    when there is one and the root value otherwise.

Threading model:
    The protocol thread writes options while the controller's worker thread
    and the responder read them, so every access goes through one lock.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

_log = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "on", "yes", "1"})
_FALSE_WORDS = frozenset({"false", "off", "no", "0"})


class OptionError(ValueError):
    """Unknown option name, or a value the option cannot accept."""


@dataclass(frozen=True)
class OptionId:
    """
    Identity of an option.

    Attributes:
        long_flag: Command-line spelling, used as "--<long_flag> VALUE".
        uci_name:  Name used in "option name ..." and "setoption name ...".
        help_text: One-line description shown by --help.
    """

    long_flag: str
    uci_name: str
    help_text: str


# ---------------------------------------------------------------------------
# Option kinds
# ---------------------------------------------------------------------------


class Option:
    """Base class: an option knows its id, default, parsing and UCI form."""

    uci_type = "string"

    def __init__(self, option_id: OptionId, default: Any) -> None:
        self.id = option_id
        self.default = self.validate(default)

    def parse(self, text: str) -> Any:
        """Convert protocol/flag text into a typed value."""
        return self.validate(text)

    def validate(self, value: Any) -> Any:
        return value

    def format_value(self, value: Any) -> str:
        return str(value)

    def uci_line(self) -> str:
        default = self.format_value(self.default) or "<empty>"
        return f"option name {self.id.uci_name} type {self.uci_type} default {default}{self._uci_suffix()}"

    def _uci_suffix(self) -> str:
        return ""

    def _invalid(self, text: Any, reason: str = "") -> OptionError:
        suffix = f" ({reason})" if reason else ""
        return OptionError(f"Invalid value {text!r} for option {self.id.uci_name}{suffix}")


class BoolOption(Option):
    uci_type = "check"

    def parse(self, text: str) -> bool:
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise self._invalid(text, "expected true or false")

    def validate(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise self._invalid(value, "expected true or false")
        return value

    def format_value(self, value: bool) -> str:
        return "true" if value else "false"


class IntOption(Option):
    uci_type = "spin"

    def __init__(self, option_id: OptionId, default: int, min_value: int, max_value: int) -> None:
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(option_id, default)

    def parse(self, text: str) -> int:
        try:
            value = int(text.strip(), 10)
        except ValueError:
            raise self._invalid(text, "expected an integer") from None
        return self.validate(value)

    def validate(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._invalid(value, "expected an integer")
        if not self.min_value <= value <= self.max_value:
            raise self._invalid(value, f"must be between {self.min_value} and {self.max_value}")
        return value

    def _uci_suffix(self) -> str:
        return f" min {self.min_value} max {self.max_value}"


class FloatOption(Option):
    """UCI has no float type; floats are advertised as strings."""

    def __init__(self, option_id: OptionId, default: float, min_value: float, max_value: float) -> None:
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(option_id, default)

    def parse(self, text: str) -> float:
        try:
            value = float(text.strip())
        except ValueError:
            raise self._invalid(text, "expected a number") from None
        return self.validate(value)

    def validate(self, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._invalid(value, "expected a number")
        value = float(value)
        # NaN fails both comparisons and is rejected here too.
        if not self.min_value <= value <= self.max_value:
            raise self._invalid(value, f"must be between {self.min_value} and {self.max_value}")
        return value

    def format_value(self, value: float) -> str:
        return f"{value:g}"


class StringOption(Option):
    def validate(self, value: Any) -> str:
        if not isinstance(value, str):
            raise self._invalid(value, "expected text")
        return value


class ChoiceOption(Option):
    uci_type = "combo"

    def __init__(self, option_id: OptionId, default: str, choices: Iterable[str]) -> None:
        self.choices = tuple(choices)
        super().__init__(option_id, default)

    def parse(self, text: str) -> str:
        wanted = text.strip()
        for choice in self.choices:
            if choice.lower() == wanted.lower():
                return choice
        raise self._invalid(text, "expected one of " + ", ".join(self.choices))

    def validate(self, value: Any) -> str:
        if value not in self.choices:
            raise self._invalid(value, "expected one of " + ", ".join(self.choices))
        return value

    def _uci_suffix(self) -> str:
        return "".join(f" var {choice}" for choice in self.choices)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class OptionsParser:
    """
    Registry and current values of all engine options.

    Attributes are private; use ``add`` to declare options and ``get`` /
    ``set_uci_option`` to read and write them.
    """

    def __init__(self) -> None:
        self._options: dict[str, Option] = {}
        self._values: dict[str, Any] = {}
        self._contexts: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add(self, option: Option) -> Option:
        """Declare an option. Its default becomes the current root value."""
        key = option.id.uci_name.lower()
        if key in self._options:
            raise ValueError(f"Option {option.id.uci_name} declared twice")
        with self._lock:
            self._options[key] = option
            self._values[key] = option.default
        return option

    def options(self) -> list[Option]:
        """Declared options, in declaration order."""
        return list(self._options.values())

    def list_options_uci(self) -> list[str]:
        """One "option name ..." advertisement line per declared option."""
        return [option.uci_line() for option in self._options.values()]

    def get(self, option_id: OptionId, context: str | None = None) -> Any:
        """
        Current value of an option.

        Args:
            option_id: The option to read.
            context:   Read the override stored under this context, falling
                       back to the root value when there is none.

        Raises:
            KeyError: The option was never declared (a programming error,
                      not a protocol one).
        """
        key = option_id.uci_name.lower()
        with self._lock:
            if context is not None:
                overrides = self._contexts.get(context, {})
                if key in overrides:
                    return overrides[key]
            return self._values[key]

    def set_uci_option(self, name: str, value: str, context: str | None = None) -> None:
        """
        Apply "setoption name <name> value <value> [context <context>]".

        Raises:
            OptionError: Unknown option name, or a value the option rejects.
        """
        option = self._options.get(name.strip().lower())
        if option is None:
            raise OptionError(f"Unknown option: {name}")
        parsed = option.parse(value)
        with self._lock:
            if context is None:
                self._values[option.id.uci_name.lower()] = parsed
            else:
                self._contexts.setdefault(context, {})[option.id.uci_name.lower()] = parsed
        _log.debug("Option %s set to %r (context=%s)", option.id.uci_name, parsed, context)

    def set_from_flags(self, flags: Mapping[str, str | None]) -> None:
        """
        Apply command-line values keyed by ``OptionId.long_flag``.

        Flags mapped to None (not given on the command line) are skipped.

        Raises:
            OptionError: Unknown flag, or a value the option rejects.
        """
        by_flag = {option.id.long_flag: option for option in self._options.values()}
        for flag, text in flags.items():
            if text is None:
                continue
            option = by_flag.get(flag)
            if option is None:
                raise OptionError(f"Unknown flag: --{flag}")
            self.set_uci_option(option.id.uci_name, text)
