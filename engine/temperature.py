"""
Move-selection temperature schedule.

Temperature (tau) controls how adventurous move selection is: 0 always
plays the top-rated move, larger values spread the choice over more moves.
The schedule lets tau start high in the opening and cool down as the game
goes on.

Two counts are derived from the ply:
    moves played  = ply // 2        (0 before white's second move)
    move number   = ply // 2 + 1    (1-based, as printed in a game score)

The cutoff is expressed as a move number ("from move 30 on"), the decay as
moves played ("after 10 moves, decay over 20"):

    ply  moves played  move number
    0    0             1
    1    0             1
    2    1             2
    4    2             3
"""


def moves_played(ply: int) -> int:
    """Full moves completed by both sides before this ply."""
    return ply // 2


def move_number(ply: int) -> int:
    """1-based full move number the ply belongs to."""
    return ply // 2 + 1


def effective_tau(
    ply: int,
    initial_temperature: float,
    cutoff_move: int,
    decay_delay_moves: int,
    decay_moves: int,
    endgame_temperature: float,
) -> float:
    """
    Temperature to use at the given ply.

    Args:
        ply:                 Half-moves played so far.
        initial_temperature: Temperature before any cutoff or decay applies.
        cutoff_move:         From this move number on, use
                             endgame_temperature outright. 0 disables it.
        decay_delay_moves:   Moves played before the decay starts.
        decay_moves:         Moves over which tau decays linearly to 0.
                             0 disables the decay.
        endgame_temperature: Temperature after the cutoff, and the floor the
                             decay never goes below.

    Returns:
        The effective temperature.
    """
    if cutoff_move and move_number(ply) >= cutoff_move:
        return endgame_temperature

    temperature = initial_temperature
    if temperature and decay_moves:
        moves = moves_played(ply)
        if moves >= decay_delay_moves + decay_moves:
            temperature = 0.0
        elif moves >= decay_delay_moves:
            temperature *= (decay_delay_moves + decay_moves - moves) / decay_moves
        temperature = max(temperature, endgame_temperature)

    return temperature
