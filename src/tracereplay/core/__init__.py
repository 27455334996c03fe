"""Core package initializer for TraceReplay.

Downstream code imports from the submodules directly:
    from tracereplay.core.settings import settings, load_settings, Settings, get_logger
    from tracereplay.core.errors import NotFoundError
"""

from __future__ import annotations

__all__ = ["__doc__"]
