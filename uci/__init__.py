"""
UCI package: the Universal Chess Interface protocol layer.

Modules:
    parser   : Command schema, line tokenizer and "setoption" sub-parser.
    requests : Typed requests passed to the controller (pydantic models).
    responder: Event types and rendering of "info" / "bestmove" lines.
    errors   : Grammar, semantic and numeric error types.
    loop     : Command dispatcher, stdin loop and console entry point.
               Can be run as: python -m uci
"""

__version__ = "0.5.0"
