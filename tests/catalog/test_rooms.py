"""Tests for the room value type."""

import pytest

from delve.catalog.rooms import Room, RoomState, RoomType


def _room(**overrides: object) -> Room:
    defaults = dict(id="r1", index=1, type=RoomType.COMBAT)
    defaults.update(overrides)
    return Room(**defaults)


class TestRoomFlags:
    def test_fresh_room(self):
        room = _room()
        assert room.state == RoomState.UNVISITED
        assert not room.is_cleared

    def test_with_flags_raises_flag(self):
        room = _room().with_flags(defeated=True)
        assert room.defeated
        assert room.is_cleared

    def test_flags_never_revert(self):
        room = _room().with_flags(looted=True, used=True)
        room = room.with_flags(looted=False, used=False)
        assert room.looted
        assert room.used

    def test_frozen(self):
        with pytest.raises(Exception):
            _room().defeated = True  # type: ignore[misc]

    @pytest.mark.parametrize("threat", [0, 4])
    def test_threat_level_bounds(self, threat):
        with pytest.raises(ValueError):
            _room(threat_level=threat)
