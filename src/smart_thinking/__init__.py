"""
smart-thinking: fact-checking for automated reasoning sessions.

This package provides the verification core used by a reasoning server to
decide whether a claim is already known to be verified, and otherwise to run
a multi-stage verification pipeline across pluggable checking tools. Results
are kept in a session-scoped semantic memory so that a fact phrased slightly
differently later in the same reasoning run is not verified twice.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
