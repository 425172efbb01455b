"""Chain execution — ordered middleware with explicit continuation."""

from switchyard.chain.cursor import ChainCursor, Continuation, MatchedEntry, resolve
from switchyard.chain.dispatcher import ErrorDispatcher
from switchyard.chain.executor import ChainExecutor, ChainState, run_chain

__all__ = [
    "ChainCursor",
    "ChainExecutor",
    "ChainState",
    "Continuation",
    "ErrorDispatcher",
    "MatchedEntry",
    "resolve",
    "run_chain",
]
