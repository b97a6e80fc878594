"""Request pacing for GitHub API.

Components:
- AdaptivePacer: Per-credential slot scheduling at a target rate
- PacerSlot: A reserved send time
"""

from .pacer import AdaptivePacer, PacerSlot

__all__ = [
    "AdaptivePacer",
    "PacerSlot",
]
