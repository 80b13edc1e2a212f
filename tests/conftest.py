"""Shared pytest fixtures used across the test suite."""

import random
import threading
from collections.abc import Iterator

import pytest

from engine.controller import EngineController
from engine.options import OptionsParser
from uci.loop import UciLoop, build_options
from uci.responder import StringUciResponder


class CollectingResponder(StringUciResponder):
    """Responder that keeps every emitted line in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.lines: list[str] = []
        self.batches: list[list[str]] = []
        self._lock = threading.Lock()

    def send_raw_responses(self, responses: list[str]) -> None:
        with self._lock:
            self.batches.append(list(responses))
            self.lines.extend(responses)

    def bestmoves(self) -> list[str]:
        return [line for line in self.lines if line.startswith("bestmove")]


@pytest.fixture
def responder() -> CollectingResponder:
    return CollectingResponder()


@pytest.fixture
def options(responder: CollectingResponder) -> OptionsParser:
    return build_options(responder)


@pytest.fixture
def engine(options: OptionsParser) -> Iterator[EngineController]:
    controller = EngineController(options, rng=random.Random(1234))
    yield controller
    controller.stop()


@pytest.fixture
def loop(responder, options, engine) -> Iterator[UciLoop]:
    with UciLoop(responder, options, engine) as uci_loop:
        yield uci_loop
