"""
Response side of the UCI protocol: events in, protocol lines out.

The controller reports progress with ``ThinkingInfo`` events and finishes a
search with a ``BestMoveInfo`` event. A responder renders each event into
exactly one line and hands batches of lines to ``send_raw_responses``.

Field rules:
    - Integer fields use -1 (``NOT_SET``) for "not reported"; structured
      fields (score, mate, wdl, moves_left, is_black) use None.
    - "wdl" and "movesleft" are additionally gated by the UCI_ShowWDL and
      UCI_ShowMovesLeft options, read when the line is rendered.
    - Clause order is fixed; GUIs parse these lines positionally.

Castling notation:
    UCI_Chess960 selects "king takes rook" (e1h1) over the standard king
    two-square form (e1g1). Telling a castling move from an ordinary king or
    rook move needs the position, so events may carry the ``board`` their
    moves are played from. The notation is read once per line and applied
    to every move in it. Without a board, moves are printed as they are.

Threading model:
    Events arrive from the controller's worker thread while the protocol
    thread may be answering "isready" or "uci". ``StdoutUciResponder`` holds
    one lock for each batch, so lines from different threads never
    interleave.
"""

import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import Iterable, TextIO

import chess

import uci
from engine.constants import ENGINE_AUTHOR, ENGINE_NAME, NOT_SET, NULL_MOVE_UCI
from engine.options import BoolOption, OptionId, OptionsParser

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Responder options
# ---------------------------------------------------------------------------

UCI_CHESS960 = OptionId("chess960", "UCI_Chess960", 'Castling moves are encoded as "king takes rook".')
SHOW_WDL = OptionId("show-wdl", "UCI_ShowWDL", "Show win, draw and lose probability.")
SHOW_MOVESLEFT = OptionId("show-movesleft", "UCI_ShowMovesLeft", "Show estimated moves left.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WDL:
    """Win/draw/loss estimate in permille, from the side to move."""

    w: int
    d: int
    l: int  # noqa: E741


@dataclass
class BestMoveInfo:
    """
    Final result of a search.

    Attributes:
        bestmove: The move to play. ``chess.Move.null()`` when there is none.
        ponder:   Expected reply, if the search has one.
        player:   Player index in multi-game setups, or -1.
        game_id:  Game index in multi-game setups, or -1.
        is_black: Side that moves, or None when not reported.
        board:    Position ``bestmove`` is played from (castling notation).
    """

    bestmove: chess.Move
    ponder: chess.Move | None = None
    player: int = NOT_SET
    game_id: int = NOT_SET
    is_black: bool | None = None
    board: chess.Board | None = None


@dataclass
class ThinkingInfo:
    """One periodic progress report. Every field is optional."""

    player: int = NOT_SET
    game_id: int = NOT_SET
    is_black: bool | None = None
    depth: int = NOT_SET
    seldepth: int = NOT_SET
    time: int = NOT_SET
    nodes: int = NOT_SET
    mate: int | None = None
    score: int | None = None
    wdl: WDL | None = None
    moves_left: int | None = None
    hashfull: int = NOT_SET
    nps: int = NOT_SET
    tb_hits: int = NOT_SET
    multipv: int = NOT_SET
    pv: list[chess.Move] = field(default_factory=list)
    comment: str = ""
    board: chess.Board | None = None


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def render_moves(
    moves: Iterable[chess.Move], board: chess.Board | None, chess960: bool
) -> list[str]:
    """
    Render a sequence of consecutive moves in the chosen castling notation.

    Args:
        moves:    Moves in playing order; each is played from the position
                  the previous one leads to.
        board:    Position the first move is played from, or None.
        chess960: True for "king takes rook" castling.

    Returns:
        UCI strings, one per move. From the first move that cannot be played
        on the tracked position onwards, moves are printed as they are.
    """
    position = board.copy(stack=False) if board is not None else None
    rendered = []
    for move in moves:
        if not move:
            rendered.append(NULL_MOVE_UCI)
        elif position is None:
            rendered.append(move.uci())
        else:
            rendered.append(position.uci(move, chess960=chess960))

        if position is not None:
            if move and not position.is_pseudo_legal(move):
                position = None
            else:
                position.push(move)
    return rendered


def _side(is_black: bool) -> str:
    return "black" if is_black else "white"


# ---------------------------------------------------------------------------
# Responders
# ---------------------------------------------------------------------------


class StringUciResponder:
    """
    Formats responses as protocol lines; subclasses decide where they go.

    ``populate_params`` must be called once to declare the responder's
    options; until then the three toggles read as false.
    """

    def __init__(self) -> None:
        self._options: OptionsParser | None = None

    def populate_params(self, options: OptionsParser) -> None:
        """Declare UCI_Chess960, UCI_ShowWDL and UCI_ShowMovesLeft."""
        options.add(BoolOption(UCI_CHESS960, False))
        options.add(BoolOption(SHOW_WDL, True))
        options.add(BoolOption(SHOW_MOVESLEFT, False))
        self._options = options

    def _flag(self, option_id: OptionId) -> bool:
        return bool(self._options.get(option_id)) if self._options else False

    def is_chess960(self) -> bool:
        return self._flag(UCI_CHESS960)

    # -----------------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------------

    def send_raw_responses(self, responses: list[str]) -> None:
        raise NotImplementedError

    def send_raw_response(self, response: str) -> None:
        self.send_raw_responses([response])

    def send_id(self) -> None:
        self.send_raw_responses(
            [
                f"id name {ENGINE_NAME} v{uci.__version__}",
                f"id author {ENGINE_AUTHOR}",
            ]
        )

    def output_best_move(self, info: BestMoveInfo) -> None:
        self.send_raw_response(self.format_best_move(info))

    def output_thinking_info(self, infos: Iterable[ThinkingInfo]) -> None:
        """Render every event and send them as one batch, in order."""
        chess960 = self.is_chess960()
        self.send_raw_responses([self.format_thinking_info(info, chess960) for info in infos])

    # -----------------------------------------------------------------------
    # Formatting
    # -----------------------------------------------------------------------

    def format_best_move(self, info: BestMoveInfo) -> str:
        """
        Render "bestmove <m>[ ponder <m>][ player <n>][ gameid <n>][ side <s>]".
        """
        moves = [info.bestmove] if info.ponder is None else [info.bestmove, info.ponder]
        rendered = render_moves(moves, info.board, self.is_chess960())

        res = f"bestmove {rendered[0]}"
        if info.ponder is not None:
            res += f" ponder {rendered[1]}"
        if info.player != NOT_SET:
            res += f" player {info.player}"
        if info.game_id != NOT_SET:
            res += f" gameid {info.game_id}"
        if info.is_black is not None:
            res += f" side {_side(info.is_black)}"
        return res

    def format_thinking_info(self, info: ThinkingInfo, chess960: bool | None = None) -> str:
        """
        Render one "info ..." line.

        Args:
            info:     The event to render.
            chess960: Castling notation for the pv; read from the options
                      when not given.
        """
        if chess960 is None:
            chess960 = self.is_chess960()

        res = "info"
        if info.player != NOT_SET:
            res += f" player {info.player}"
        if info.game_id != NOT_SET:
            res += f" gameid {info.game_id}"
        if info.is_black is not None:
            res += f" side {_side(info.is_black)}"
        if info.depth >= 0:
            res += f" depth {max(info.depth, 1)}"
        if info.seldepth >= 0:
            res += f" seldepth {info.seldepth}"
        if info.time >= 0:
            res += f" time {info.time}"
        if info.nodes >= 0:
            res += f" nodes {info.nodes}"
        if info.mate is not None:
            res += f" score mate {info.mate}"
        if info.score is not None:
            res += f" score cp {info.score}"
        if info.wdl is not None and self._flag(SHOW_WDL):
            res += f" wdl {info.wdl.w} {info.wdl.d} {info.wdl.l}"
        if info.moves_left is not None and self._flag(SHOW_MOVESLEFT):
            res += f" movesleft {info.moves_left}"
        if info.hashfull >= 0:
            res += f" hashfull {info.hashfull}"
        if info.nps >= 0:
            res += f" nps {info.nps}"
        if info.tb_hits >= 0:
            res += f" tbhits {info.tb_hits}"
        if info.multipv >= 0:
            res += f" multipv {info.multipv}"
        if info.pv:
            res += " pv " + " ".join(render_moves(info.pv, info.board, chess960))
        if info.comment:
            res += f" string {info.comment}"
        return res


class StdoutUciResponder(StringUciResponder):
    """
    Writes responses to a text stream (stdout by default).

    Every line is flushed immediately: GUIs read line by line and will wait
    forever on output that sits in a buffer.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self._stream = stream
        self._lock = threading.Lock()

    def send_raw_responses(self, responses: list[str]) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            for response in responses:
                _log.debug("<< %s", response)
                stream.write(response + "\n")
                stream.flush()
