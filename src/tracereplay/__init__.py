"""TraceReplay package bootstrap.

Replays recorded browser trace archives: rebuilds DOM snapshots, resolves the
network resources they referenced and serves both to a viewer front end.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
