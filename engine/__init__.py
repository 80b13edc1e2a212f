"""
Engine package: everything the UCI layer talks to.

This package implements the collaborators behind the protocol loop. It does
not search a game tree; moves are sampled among legal ones.

Modules:
    constants  : Identity strings, numeric limits, sampling parameters
    options    : Typed option store behind "uci" / "setoption"
    controller : Position handling and the background move worker
    temperature: Move-selection temperature schedule
"""
