"""
Engine constants: identity strings, protocol limits, and option defaults.

All literal values shared between the protocol layer and the controller are
defined here so that no module introduces its own magic numbers or strings.
"""

import chess

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
# Sent in reply to "uci" as "id name <ENGINE_NAME> v<version>" and
# "id author <ENGINE_AUTHOR>".

ENGINE_NAME: str = "ChessUci"
ENGINE_AUTHOR: str = "The Chess UCI Authors."

# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
# Substituted when "position" carries "startpos" instead of "fen".

STARTPOS_FEN: str = chess.STARTING_FEN

# ---------------------------------------------------------------------------
# Numeric limits
# ---------------------------------------------------------------------------
# Numeric "go" parameters are 32-bit signed integers on the wire. Anything
# outside this range is rejected as "out of range" rather than silently
# accepted, so a GUI typo never turns into a multi-day movetime.

INT32_MIN: int = -(2**31)
INT32_MAX: int = 2**31 - 1

# Sentinel used by integer fields of thinking-info / best-move events to
# mean "not reported".
NOT_SET: int = -1

# Rendered in place of a best move when the side to move has no legal moves.
NULL_MOVE_UCI: str = "0000"

# ---------------------------------------------------------------------------
# Move sampling
# ---------------------------------------------------------------------------
# Prior given to "forcing" moves (captures and checks) by the controller's
# move sampler. Quiet moves get 0. With temperature tau each move is
# weighted exp(prior / tau).

FORCING_MOVE_PRIOR: float = 1.0

# Upper bound on how long a finished worker is waited for by ensure_ready()
# and stop(). Sampling a move takes microseconds; this only matters if the
# worker is stuck waiting on movetime.
WORKER_JOIN_TIMEOUT_S: float = 5.0
