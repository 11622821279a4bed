"""Mission working state (journal, evidence, next actions, daily snapshots, chat)."""

from hcmstore.missions.chat import ChatStore
from hcmstore.missions.store import MissionStore

__all__ = ["ChatStore", "MissionStore"]
