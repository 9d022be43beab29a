"""
Editor Module

Session controller that ties selection, generation, compositing and the
compare view together for one editing session.
"""

from .executor import DaemonThreadExecutor
from .session import EditSession, GenerationTicket

__version__ = "1.0.0"
__all__ = [
    "DaemonThreadExecutor",
    "EditSession",
    "GenerationTicket"
]
