"""
Typed requests handed from the dispatcher to the controller.

The dispatcher converts the raw keyword -> text map of a parsed line into
one of these models. They are frozen pydantic models: once built, the
controller may read them from any thread without copying.

Conversion errors (bad integers, flags carrying values) are detected by the
dispatcher before a model is built, so it can report the exact protocol
error message. The validators here guard the invariants a request must
satisfy however it was constructed.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.constants import INT32_MAX, INT32_MIN, STARTPOS_FEN

Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]


class GoParams(BaseModel):
    """
    Parameters of a "go" command.

    Fields:
        infinite:    Search until "stop"; never send bestmove on our own.
        ponder:      Search in ponder mode until "ponderhit" or "stop".
        searchmoves: Restrict the search to these moves (UCI notation),
                     in the order the GUI listed them.
        wtime .. movetime: Optional clock/limit values. None means the GUI
                     did not send the keyword; 0 is a real value.
    """

    model_config = ConfigDict(frozen=True)

    infinite: bool = False
    ponder: bool = False
    searchmoves: tuple[str, ...] = ()
    wtime: Int32 | None = None
    btime: Int32 | None = None
    winc: Int32 | None = None
    binc: Int32 | None = None
    movestogo: Int32 | None = None
    depth: Int32 | None = None
    mate: Int32 | None = None
    nodes: Int32 | None = None
    movetime: Int32 | None = None


class PositionRequest(BaseModel):
    """Position to set up: a FEN string plus moves to replay from it."""

    model_config = ConfigDict(frozen=True)

    fen: str = STARTPOS_FEN
    moves: tuple[str, ...] = ()

    @field_validator("fen")
    @classmethod
    def fen_not_blank(cls, v: str) -> str:
        """Blank FEN means the start position."""
        return v.strip() or STARTPOS_FEN


class SetOptionRequest(BaseModel):
    """An option assignment: non-empty name and value, optional context."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    context: str | None = None

    @field_validator("name", "value")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Name and value must carry text; empty is never defaulted."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v
