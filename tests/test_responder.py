"""Tests for rendering bestmove / info lines and the stdout sink."""

import io
import threading

import chess

from engine.options import OptionsParser
from uci.responder import (
    SHOW_MOVESLEFT,
    SHOW_WDL,
    UCI_CHESS960,
    WDL,
    BestMoveInfo,
    StdoutUciResponder,
    ThinkingInfo,
    render_moves,
)

CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"


def move(uci: str) -> chess.Move:
    return chess.Move.from_uci(uci)


class TestBestMove:
    def test_only_bestmove(self, responder) -> None:
        assert responder.format_best_move(BestMoveInfo(move("e2e4"))) == "bestmove e2e4"

    def test_all_clauses_in_order(self, responder) -> None:
        info = BestMoveInfo(move("e2e4"), ponder=move("e7e5"), player=1, game_id=7, is_black=False)

        assert responder.format_best_move(info) == "bestmove e2e4 ponder e7e5 player 1 gameid 7 side white"

    def test_side_black(self, responder) -> None:
        info = BestMoveInfo(move("e7e5"), is_black=True)
        assert responder.format_best_move(info) == "bestmove e7e5 side black"

    def test_zero_player_is_reported(self, responder) -> None:
        info = BestMoveInfo(move("e2e4"), player=0, game_id=0)
        assert responder.format_best_move(info) == "bestmove e2e4 player 0 gameid 0"

    def test_null_move(self, responder) -> None:
        assert responder.format_best_move(BestMoveInfo(chess.Move.null())) == "bestmove 0000"

    def test_output_best_move_sends_one_line(self, responder) -> None:
        responder.output_best_move(BestMoveInfo(move("d2d4")))
        assert responder.batches == [["bestmove d2d4"]]


class TestCastlingNotation:
    def test_standard_notation(self, responder, options: OptionsParser) -> None:
        board = chess.Board(CASTLING_FEN)
        info = BestMoveInfo(move("e1g1"), ponder=move("e8c8"), board=board)

        assert responder.format_best_move(info) == "bestmove e1g1 ponder e8c8"

    def test_chess960_notation_applies_to_both_moves(self, responder, options: OptionsParser) -> None:
        options.set_uci_option("UCI_Chess960", "true")
        board = chess.Board(CASTLING_FEN)
        info = BestMoveInfo(move("e1g1"), ponder=move("e8c8"), board=board)

        assert responder.format_best_move(info) == "bestmove e1h1 ponder e8a8"

    def test_chess960_notation_in_pv(self, responder, options: OptionsParser) -> None:
        options.set_uci_option("UCI_Chess960", "true")
        board = chess.Board(CASTLING_FEN)
        info = ThinkingInfo(pv=[move("e1c1"), move("e8g8"), move("d1d8")], board=board)

        assert responder.format_thinking_info(info) == "info pv e1a1 e8h8 d1d8"

    def test_non_castling_king_move_untouched(self, responder, options: OptionsParser) -> None:
        options.set_uci_option("UCI_Chess960", "true")
        board = chess.Board(CASTLING_FEN)

        assert render_moves([move("e1f1")], board, chess960=True) == ["e1f1"]

    def test_king_takes_rook_input_rendered_standard(self) -> None:
        board = chess.Board(CASTLING_FEN)
        assert render_moves([move("e1h1")], board, chess960=False) == ["e1g1"]

    def test_unplayable_move_stops_position_tracking(self) -> None:
        board = chess.Board(CASTLING_FEN)
        rendered = render_moves([move("e2e4"), move("e1g1")], board, chess960=True)

        assert rendered == ["e2e4", "e1g1"]

    def test_without_board_moves_render_as_given(self) -> None:
        assert render_moves([move("e1g1"), move("e8c8")], None, chess960=True) == ["e1g1", "e8c8"]

    def test_board_is_not_modified(self) -> None:
        board = chess.Board(CASTLING_FEN)
        render_moves([move("e1g1"), move("e8c8")], board, chess960=True)

        assert board.fen() == CASTLING_FEN


class TestThinkingInfo:
    def test_empty_info(self, responder) -> None:
        assert responder.format_thinking_info(ThinkingInfo()) == "info"

    def test_full_line_order(self, responder, options: OptionsParser) -> None:
        options.set_uci_option("UCI_ShowMovesLeft", "true")
        info = ThinkingInfo(
            player=1,
            game_id=2,
            is_black=True,
            depth=10,
            seldepth=20,
            time=300,
            nodes=4000,
            mate=3,
            score=55,
            wdl=WDL(600, 300, 100),
            moves_left=40,
            hashfull=500,
            nps=6000,
            tb_hits=7,
            multipv=1,
            pv=[move("e2e4"), move("e7e5")],
            comment="hello world",
        )

        assert responder.format_thinking_info(info) == (
            "info player 1 gameid 2 side black depth 10 seldepth 20 time 300 nodes 4000"
            " score mate 3 score cp 55 wdl 600 300 100 movesleft 40 hashfull 500"
            " nps 6000 tbhits 7 multipv 1 pv e2e4 e7e5 string hello world"
        )

    def test_depth_floored_at_one(self, responder) -> None:
        assert responder.format_thinking_info(ThinkingInfo(depth=0)) == "info depth 1"

    def test_zero_values_are_reported(self, responder) -> None:
        info = ThinkingInfo(time=0, nodes=0, score=0, hashfull=0)
        assert responder.format_thinking_info(info) == "info time 0 nodes 0 score cp 0 hashfull 0"

    def test_wdl_shown_by_default(self, responder, options: OptionsParser) -> None:
        info = ThinkingInfo(depth=3, wdl=WDL(1, 2, 3), nps=10)
        assert responder.format_thinking_info(info) == "info depth 3 wdl 1 2 3 nps 10"

    def test_wdl_hidden_when_disabled(self, responder, options: OptionsParser) -> None:
        options.set_uci_option("UCI_ShowWDL", "false")
        info = ThinkingInfo(depth=3, wdl=WDL(1, 2, 3), nps=10)

        assert responder.format_thinking_info(info) == "info depth 3 nps 10"

    def test_toggle_is_read_at_render_time(self, responder, options: OptionsParser) -> None:
        info = ThinkingInfo(wdl=WDL(1, 2, 3))
        assert "wdl" in responder.format_thinking_info(info)

        options.set_uci_option("UCI_ShowWDL", "false")
        assert "wdl" not in responder.format_thinking_info(info)

        options.set_uci_option("UCI_ShowWDL", "true")
        assert "wdl" in responder.format_thinking_info(info)

    def test_movesleft_hidden_by_default(self, responder, options: OptionsParser) -> None:
        info = ThinkingInfo(moves_left=25)
        assert responder.format_thinking_info(info) == "info"

        options.set_uci_option("UCI_ShowMovesLeft", "true")
        assert responder.format_thinking_info(info) == "info movesleft 25"

    def test_batch_preserves_order(self, responder) -> None:
        responder.output_thinking_info([ThinkingInfo(depth=1), ThinkingInfo(depth=2), ThinkingInfo(multipv=2)])

        assert responder.batches == [["info depth 1", "info depth 2", "info multipv 2"]]

    def test_without_populated_options_toggles_read_false(self) -> None:
        bare = StdoutUciResponder(io.StringIO())

        assert not bare.is_chess960()
        assert bare.format_thinking_info(ThinkingInfo(wdl=WDL(1, 2, 3))) == "info"


class TestStdoutResponder:
    def test_writes_one_line_per_response(self) -> None:
        stream = io.StringIO()
        responder = StdoutUciResponder(stream)

        responder.send_raw_responses(["readyok", "uciok"])

        assert stream.getvalue() == "readyok\nuciok\n"

    def test_send_id(self) -> None:
        stream = io.StringIO()
        StdoutUciResponder(stream).send_id()

        lines = stream.getvalue().splitlines()
        assert lines[0].startswith("id name ChessUci v")
        assert lines[1] == "id author The Chess UCI Authors."

    def test_concurrent_batches_do_not_interleave(self) -> None:
        stream = io.StringIO()
        responder = StdoutUciResponder(stream)
        batch_size = 50

        def emit(tag: str) -> None:
            responder.send_raw_responses([f"{tag} {i}" for i in range(batch_size)])

        threads = [threading.Thread(target=emit, args=(f"t{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = stream.getvalue().splitlines()
        assert len(lines) == 8 * batch_size
        for start in range(0, len(lines), batch_size):
            tags = {line.split()[0] for line in lines[start:start + batch_size]}
            assert len(tags) == 1

    def test_option_ids(self) -> None:
        assert UCI_CHESS960.uci_name == "UCI_Chess960"
        assert SHOW_WDL.long_flag == "show-wdl"
        assert SHOW_MOVESLEFT.uci_name == "UCI_ShowMovesLeft"
