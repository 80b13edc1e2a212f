"""
Engine controller: the component the UCI loop forwards requests to.

The controller owns the current position and runs "searches" on a daemon
worker thread, reporting through the registered responders. It does not
search a game tree: it samples one legal move with a temperature-weighted
rule (see ``choose_move``), which is enough to play legal games and to
exercise every part of the protocol.

Threading model:
    The UCI loop runs on the main thread and must never block on a search.
    "go" spawns a worker thread; the main thread keeps reading stdin so it
    can handle "stop" and "ponderhit" at any time. Two ``threading.Event``
    objects connect them:
        stop_event       set by "stop" (or "ucinewgame"/a new "go"),
        ponderhit_event  set by "ponderhit".
    A worker for "go infinite" or "go ponder" holds its bestmove until one
    of these is set, as the protocol requires.
"""

import logging
import math
import random
import threading
import time

import chess

from engine.constants import FORCING_MOVE_PRIOR, STARTPOS_FEN, WORKER_JOIN_TIMEOUT_S
from engine.options import FloatOption, IntOption, OptionId, OptionsParser
from engine.temperature import effective_tau
from uci.requests import GoParams
from uci.responder import UCI_CHESS960, BestMoveInfo, StringUciResponder, ThinkingInfo

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Controller options
# ---------------------------------------------------------------------------

TEMPERATURE = OptionId("temperature", "Temperature", "Initial move selection temperature.")
TEMP_DECAY_MOVES = OptionId(
    "tempdecay-moves", "TempDecayMoves", "Moves over which temperature decays to 0 (0 = off)."
)
TEMP_DECAY_DELAY_MOVES = OptionId(
    "tempdecay-delay-moves", "TempDecayDelayMoves", "Moves played before temperature decay starts."
)
TEMP_CUTOFF_MOVE = OptionId(
    "temp-cutoff-move", "TempCutoffMove", "Move number from which endgame temperature is used (0 = off)."
)
TEMP_ENDGAME = OptionId(
    "temp-endgame", "TempEndgame", "Temperature after the cutoff, and floor of the decay."
)


class EngineError(RuntimeError):
    """The controller rejected a request (bad FEN, illegal move, ...)."""


def populate_params(options: OptionsParser) -> None:
    """Declare the controller's options."""
    options.add(FloatOption(TEMPERATURE, 0.0, 0.0, 100.0))
    options.add(IntOption(TEMP_DECAY_MOVES, 0, 0, 640))
    options.add(IntOption(TEMP_DECAY_DELAY_MOVES, 0, 0, 100))
    options.add(IntOption(TEMP_CUTOFF_MOVE, 0, 0, 1000))
    options.add(FloatOption(TEMP_ENDGAME, 0.0, 0.0, 100.0))


# ---------------------------------------------------------------------------
# Move selection
# ---------------------------------------------------------------------------


def _prior(board: chess.Board, move: chess.Move) -> float:
    if board.is_capture(move) or board.gives_check(move):
        return FORCING_MOVE_PRIOR
    return 0.0


def choose_move(
    board: chess.Board,
    candidates: list[chess.Move],
    tau: float,
    rng: random.Random,
) -> chess.Move:
    """
    Pick one of ``candidates`` for the side to move.

    Captures and checks get a prior of 1, other moves 0. With tau <= 0 the
    first highest-prior move in UCI order is played; otherwise each move is
    sampled with weight exp(prior / tau), so large tau approaches a uniform
    choice.

    Args:
        board:      Position to move from.
        candidates: Legal moves to choose among (non-empty).
        tau:        Effective temperature.
        rng:        Random source, injected so games are reproducible.
    """
    ordered = sorted(candidates, key=lambda m: m.uci())
    priors = [_prior(board, move) for move in ordered]

    if tau <= 0:
        best = max(priors)
        return ordered[priors.index(best)]

    top = max(priors)
    weights = [math.exp((p - top) / tau) for p in priors]
    return rng.choices(ordered, weights=weights, k=1)[0]


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class EngineController:
    """
    Stateful request handler behind the UCI loop.

    Attributes:
        board:        Current position, replaced by every "position".
        options:      Option store; temperature settings are read per "go".
        rng:          Random source for move sampling.
    """

    def __init__(self, options: OptionsParser, rng: random.Random | None = None) -> None:
        self.options = options
        self.rng = rng or random.Random()
        self.board: chess.Board = chess.Board()
        self._responders: list[StringUciResponder] = []
        self._responders_lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._ponderhit_event = threading.Event()

    # -----------------------------------------------------------------------
    # Responder registration
    # -----------------------------------------------------------------------

    def register_uci_responder(self, responder: StringUciResponder) -> None:
        with self._responders_lock:
            self._responders.append(responder)

    def unregister_uci_responder(self, responder: StringUciResponder) -> None:
        with self._responders_lock:
            if responder in self._responders:
                self._responders.remove(responder)

    def _each_responder(self) -> list[StringUciResponder]:
        with self._responders_lock:
            return list(self._responders)

    # -----------------------------------------------------------------------
    # Protocol requests
    # -----------------------------------------------------------------------

    def ensure_ready(self) -> None:
        """
        Block until the engine can accept a new command.

        A search that was told to stop is waited for, so its bestmove is
        always sent before "readyok". A search still running under
        "go infinite" / "go ponder" is left alone.
        """
        if self._stop_event.is_set():
            self._join_worker()

    def new_game(self) -> None:
        self.stop()
        self.board = chess.Board(chess960=self._chess960())
        _log.info("New game")

    def set_position(self, fen: str, moves: list[str] | tuple[str, ...]) -> None:
        """
        Set up ``fen`` and replay ``moves`` (UCI notation) on it.

        Raises:
            EngineError: The FEN is invalid or a move is illegal. The
                         current position is left unchanged.
        """
        try:
            board = chess.Board(fen or STARTPOS_FEN, chess960=self._chess960())
        except ValueError as exc:
            raise EngineError(f"Invalid FEN {fen!r}: {exc}") from exc

        for token in moves:
            try:
                board.push_uci(token)
            except ValueError as exc:
                raise EngineError(f"Illegal move {token} in position {board.fen()}") from exc

        self.board = board
        _log.debug("Position set: %s", board.fen())

    def current_fen(self) -> str:
        return self.board.fen()

    def go(self, params: GoParams) -> None:
        """Start a search for the current position on a worker thread."""
        self.stop()
        self._stop_event = threading.Event()
        self._ponderhit_event = threading.Event()

        candidates = self._candidates(params.searchmoves)
        tau = self._effective_tau()

        # The worker gets its own copy; the main thread may receive the next
        # "position" while the search is still running.
        self._worker = threading.Thread(
            target=self._search_and_reply,
            args=(self.board.copy(), candidates, tau, params, self._stop_event, self._ponderhit_event),
            name="uci-search",
            daemon=True,
        )
        self._worker.start()

    def stop(self) -> None:
        """Ask the running search to finish and wait for its bestmove."""
        self._stop_event.set()
        self._join_worker()

    def ponder_hit(self) -> None:
        """The expected move was played: a pondering search may now reply."""
        self._ponderhit_event.set()

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _chess960(self) -> bool:
        return bool(self.options.get(UCI_CHESS960))

    def _effective_tau(self) -> float:
        return effective_tau(
            self.board.ply(),
            self.options.get(TEMPERATURE),
            self.options.get(TEMP_CUTOFF_MOVE),
            self.options.get(TEMP_DECAY_DELAY_MOVES),
            self.options.get(TEMP_DECAY_MOVES),
            self.options.get(TEMP_ENDGAME),
        )

    def _candidates(self, searchmoves: tuple[str, ...]) -> list[chess.Move]:
        legal = list(self.board.legal_moves)
        if not searchmoves:
            return legal

        wanted = []
        for token in searchmoves:
            try:
                wanted.append(self.board.parse_uci(token))
            except ValueError as exc:
                raise EngineError(f"Illegal searchmove {token}") from exc
        return [move for move in legal if move in wanted]

    def _join_worker(self) -> None:
        worker = self._worker
        if worker is not None and worker.is_alive() and worker is not threading.current_thread():
            worker.join(timeout=WORKER_JOIN_TIMEOUT_S)
            if worker.is_alive():
                _log.warning("Search thread did not finish within %.1fs", WORKER_JOIN_TIMEOUT_S)
                return
        self._worker = None

    def _search_and_reply(
        self,
        board: chess.Board,
        candidates: list[chess.Move],
        tau: float,
        params: GoParams,
        stop_event: threading.Event,
        ponderhit_event: threading.Event,
    ) -> None:
        """
        Worker body: pick a move, report it, then send bestmove.

        Runs on the worker thread. The bestmove is held back while the
        request is "infinite" (until stop) or "ponder" (until stop or
        ponderhit), and for at most "movetime" milliseconds otherwise.
        """
        start = time.monotonic()
        move = choose_move(board, candidates, tau, self.rng) if candidates else chess.Move.null()
        elapsed_ms = int((time.monotonic() - start) * 1000)
        nodes = len(candidates)

        if move:
            info = ThinkingInfo(
                depth=1,
                seldepth=1,
                time=elapsed_ms,
                nodes=nodes,
                nps=nodes * 1000 // max(1, elapsed_ms),
                pv=[move],
                board=board,
            )
            for responder in self._each_responder():
                responder.output_thinking_info([info])

        if params.infinite:
            stop_event.wait()
        elif params.ponder:
            while not (stop_event.is_set() or ponderhit_event.is_set()):
                stop_event.wait(0.01)
        elif params.movetime is not None:
            stop_event.wait(max(0, params.movetime) / 1000)

        best = BestMoveInfo(bestmove=move, board=board)
        for responder in self._each_responder():
            responder.output_best_move(best)
        _log.debug("Search finished: %s (tau=%.3f, %d candidates)", move.uci(), tau, nodes)
