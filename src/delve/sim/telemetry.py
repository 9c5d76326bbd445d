"""Telemetry data models for per-room and per-run statistics.

These lightweight dataclasses capture what a batch of headless runs needs
for balance review without storing every intermediate run snapshot:

- **RoomTelemetry**: room visited, torches and health after it, outcome.
- **RunTelemetry**: seed, tier, goal, ordered room log, final payout.

Both classes are plain ``dataclass`` instances (not Pydantic models) to
keep telemetry collection as cheap as possible during batch runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RoomTelemetry:
    """Stats from a single room entry.

    Attributes
    ----------
    room_id:
        Id of the room entered (``r0`` .. ``r{n-1}``).
    room_type:
        Room type tag, e.g. ``"combat"``.
    outcome:
        Short label of what the agent did there (``"win"``, ``"fled"``,
        ``"altar:heal"``, ``"trap:detect"`` ...).
    torches_after:
        Torches left once the room was resolved.
    health_after:
        Player health once the room was resolved.
    """

    room_id: str
    room_type: str
    outcome: str
    torches_after: int
    health_after: int


@dataclass
class RunTelemetry:
    """Stats from a full expedition.

    Attributes
    ----------
    seed:
        The run seed; replaying it with the same agent reproduces the run.
    tier:
        Tier number the run was played on.
    goal_type:
        Goal tag of the run.
    status:
        Final :class:`~delve.sim.dungeon.state.RunStatus` value.
    rooms:
        Ordered room log, one entry per room entry.
    """

    seed: int
    tier: int
    goal_type: str
    affixes: list[str] = field(default_factory=list)
    status: str = "active"
    rooms: list[RoomTelemetry] = field(default_factory=list)
    rooms_total: int = 0
    goal_completed: bool = False
    torches_left: int = 0
    exploration_points: int = 0
    exploration_rank: str = "novice"
    final_gold: int = 0
    final_exp: int = 0
    items_collected: int = 0
    total_multiplier: float = 1.0

    @property
    def rooms_visited(self) -> int:
        return len({room.room_id for room in self.rooms})

    @property
    def battles_won(self) -> int:
        return sum(1 for room in self.rooms if room.outcome == "win")
