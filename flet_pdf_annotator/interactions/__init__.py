"""
User interaction handlers - pointer gestures and programmatic highlights.
"""

from .gestures import InteractionStateMachine
from .highlights import HighlightRegistry

__all__ = ["InteractionStateMachine", "HighlightRegistry"]
