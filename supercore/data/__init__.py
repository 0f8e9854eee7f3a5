"""Collaborator adapters — result feed, model client and state stores."""

from __future__ import annotations

from supercore.data.game_client import GameResultClient
from supercore.data.generative_client import GenerativeModelClient
from supercore.data.state_store import FileStateStore, RedisStateStore

__all__ = [
    "FileStateStore",
    "GameResultClient",
    "GenerativeModelClient",
    "RedisStateStore",
]
