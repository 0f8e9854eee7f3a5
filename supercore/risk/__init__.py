"""Self-protection — reflexive correction after confident losses."""

from __future__ import annotations

from supercore.risk.reflexive import ReflexiveCorrection

__all__ = ["ReflexiveCorrection"]
