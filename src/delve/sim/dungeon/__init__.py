"""Dungeon module -- room sequencing, torches, scoring, rewards and runs."""

from delve.sim.dungeon.map_gen import MapGenerator
from delve.sim.dungeon.resolution import AltarBlessing, TrapAction
from delve.sim.dungeon.rewards import DungeonRunRewards, finalize_rewards, predict_rewards
from delve.sim.dungeon.run_manager import RunConfig, RunManager
from delve.sim.dungeon.state import NextState, RoomResult, RunState, RunStatus

__all__ = [
    "AltarBlessing",
    "DungeonRunRewards",
    "MapGenerator",
    "NextState",
    "RoomResult",
    "RunConfig",
    "RunManager",
    "RunState",
    "RunStatus",
    "TrapAction",
    "finalize_rewards",
    "predict_rewards",
]
