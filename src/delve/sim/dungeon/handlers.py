"""Room entry handlers.

One handler per room type, dispatched through a fixed table.  A handler
receives a :class:`RoomContext` and returns the updated run together with
a :class:`RoomResult`.  Handlers never raise: a missing enemy or an empty
chest becomes a harmless log line.

Re-entering a room whose ``defeated``/``looted``/``used`` flag is set
short-circuits to a safe result that never grants loot again.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from delve.catalog.affixes import AffixContext, apply_affix_effect
from delve.catalog.goals import advance_goal
from delve.catalog.rooms import GoalItemKind, Room, RoomType
from delve.sim.content.registry import ContentProvider
from delve.sim.core.entities import Enemy, PlayerSnapshot, StateDelta
from delve.sim.core.rng import GameRNG
from delve.sim.dungeon.resources import exhaustion_penalties
from delve.sim.dungeon.state import MerchantOffer, NextState, RoomResult, RunState

logger = logging.getLogger(__name__)

CHEST_LOOT_CHANCE = 0.7
MERCHANT_STOCK_SIZE = 3
MERCHANT_PRICE_SPREAD = (0.8, 1.2)
TORCH_PRICE = 30
REVISIT_HEAL_FRACTION = 0.10

_GOAL_ITEM_NAMES: dict[GoalItemKind, str] = {
    GoalItemKind.KEY: "the Warden's Key",
    GoalItemKind.SHARD: "a shard of ancient power",
    GoalItemKind.PRISONER: "the prisoner",
}


@dataclass
class RoomContext:
    """Everything a handler may look at while a room is being processed."""

    run: RunState
    room: Room
    player: PlayerSnapshot
    provider: ContentProvider
    rng: GameRNG


Handler = Callable[[RoomContext], tuple[RunState, RoomResult]]


def _result(*log: str, **fields) -> RoomResult:
    return RoomResult(log=tuple(log), **fields)


def claim_goal_item(run: RunState, room_id: str) -> tuple[RunState, str | None]:
    """Claim the goal item in *room_id* if it holds an unclaimed one."""
    room = run.room(room_id)
    if room.goal_item is None or room.goal_item_claimed:
        return run, None
    run = run.with_room(room.with_flags(goal_item_claimed=True))
    goal = advance_goal(run.goal)
    run = run.model_copy(update={"goal": goal})
    message = f"You secure {_GOAL_ITEM_NAMES[room.goal_item]}! ({goal.current}/{goal.required})"
    if goal.completed:
        message += " The way to the boss is open."
    logger.info("Goal progress %d/%d in room %s", goal.current, goal.required, room_id)
    return run, message


# ---------------------------------------------------------------------------
# Combat
# ---------------------------------------------------------------------------

def _prepare_enemy(ctx: RoomContext, enemy: Enemy) -> Enemy:
    """Apply the tier's level bonus and the enemy-stat affixes."""
    tier = ctx.run.tier
    health = apply_affix_effect(ctx.run.affixes, AffixContext.ENEMY_STATS, enemy.health)
    max_health = apply_affix_effect(
        ctx.run.affixes, AffixContext.ENEMY_STATS, enemy.max_health,
    )
    return enemy.model_copy(update={
        "level": enemy.level + tier.enemy_level_bonus,
        "health": health,
        "max_health": max_health,
    })


def _revisit_trickle(ctx: RoomContext, message: str) -> tuple[RunState, RoomResult]:
    heal = math.floor(ctx.player.max_health * REVISIT_HEAL_FRACTION)
    return ctx.run, _result(
        message,
        f"You catch your breath and recover {heal} health.",
        changes=StateDelta(health=heal),
        next_state=NextState.EXPLORING,
    )


def _handle_fight(ctx: RoomContext, is_boss: bool) -> tuple[RunState, RoomResult]:
    if ctx.room.defeated:
        return _revisit_trickle(ctx, "The bodies of your foes lie where they fell.")

    enemy = ctx.provider.generate_enemy(ctx.room.index, is_boss, ctx.run.tier.difficulty)
    if enemy is None:
        logger.warning("No enemy available for room %s", ctx.room.id)
        # Cleared without a fight; whatever it guarded is still claimable.
        run = ctx.run.with_room(ctx.room.with_flags(defeated=True))
        run, goal_message = claim_goal_item(run, ctx.room.id)
        log = ["The room is silent. Whatever lived here is long gone."]
        if goal_message:
            log.append(goal_message)
        return run, _result(*log, next_state=NextState.EXPLORING)

    enemy = _prepare_enemy(ctx, enemy)
    log = [f"{'The boss' if is_boss else 'An enemy'} appears: {enemy.name} (level {enemy.level})!"]
    penalty = None
    if ctx.run.resource.exhausted:
        penalty = exhaustion_penalties(ctx.player, ctx.run.resource)
        log.append("In the dark you fight at a disadvantage.")
    return ctx.run, _result(
        *log, next_state=NextState.BATTLE, enemy=enemy, penalty=penalty,
    )


def handle_combat(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    return _handle_fight(ctx, is_boss=False)


def handle_boss(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    return _handle_fight(ctx, is_boss=True)


# ---------------------------------------------------------------------------
# Non-combat rooms
# ---------------------------------------------------------------------------

def handle_trap(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    if ctx.room.used:
        return ctx.run, _result(
            "The trap has already been sprung.", next_state=NextState.EXPLORING,
        )
    return ctx.run, _result(
        "You spot a pressure plate in the floor ahead.", next_state=NextState.EVENT,
    )


def handle_altar(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    if ctx.room.used:
        return ctx.run, _result(
            "The altar's power is spent.", next_state=NextState.EXPLORING,
        )
    return ctx.run, _result(
        "An ancient altar hums with quiet power.", next_state=NextState.EVENT,
    )


def handle_chest(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    room = ctx.room
    if room.looted:
        return ctx.run, _result(
            "The chest lies open and empty.", next_state=NextState.EXPLORING,
        )

    run = ctx.run
    if room.has_loot is None:
        # Decided once; chests holding a goal item are never empty.
        has_loot = room.goal_item is not None or ctx.rng.chance(CHEST_LOOT_CHANCE)
        room = room.model_copy(update={"has_loot": has_loot})
        run = run.with_room(room)

    if not room.has_loot:
        run = run.with_room(room.with_flags(looted=True))
        return run, _result(
            "You pry the chest open. It is empty.", next_state=NextState.EXPLORING,
        )
    return run, _result("A sturdy chest sits in the corner.", next_state=NextState.EVENT)


def handle_event(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    room = ctx.room
    if room.locked:
        run = ctx.run.with_room(room.with_flags(used=True))
        return run, _result(
            "The sealed gate grinds open before you.", next_state=NextState.EXPLORING,
        )
    if room.used:
        return ctx.run, _result(
            "Nothing else stirs here.", next_state=NextState.EXPLORING,
        )
    return ctx.run, _result(
        "Something unusual awaits in this room.", next_state=NextState.EVENT,
    )


def _roll_stock(ctx: RoomContext) -> tuple[MerchantOffer, ...]:
    affixes = ctx.run.affixes
    rng = GameRNG(ctx.run.seed).fork(f"merchant:{ctx.room.id}")
    provider = ctx.provider.bind(rng.fork("content"))
    offers: list[MerchantOffer] = []
    materials = provider.generate_materials(ctx.room.index, False, MERCHANT_STOCK_SIZE)
    for n, material in enumerate(materials):
        base = math.floor(material.price * rng.uniform(*MERCHANT_PRICE_SPREAD))
        offers.append(MerchantOffer(
            id=f"{ctx.room.id}:{n}",
            label=material.name,
            price=apply_affix_effect(affixes, AffixContext.MERCHANT_PRICE, base),
            item=material,
        ))
    offers.append(MerchantOffer(
        id=f"{ctx.room.id}:torch",
        label="Torch",
        price=apply_affix_effect(affixes, AffixContext.MERCHANT_PRICE, TORCH_PRICE),
        torches=1,
    ))
    return tuple(offers)


def merchant_stock(ctx: RoomContext) -> tuple[RunState, tuple[MerchantOffer, ...]]:
    """Stock of the merchant in ``ctx.room``, minus offers already sold.

    The full stock is rolled on the first visit and kept on the run in
    ``merchant_stocks``; later visits are served from there, so the wares
    do not depend on the provider giving the same answer twice.
    """
    run = ctx.run
    stock = run.merchant_stocks.get(ctx.room.id)
    if stock is None:
        stock = _roll_stock(ctx)
        run = run.model_copy(update={
            "merchant_stocks": {**run.merchant_stocks, ctx.room.id: stock},
        })
    return run, tuple(o for o in stock if o.id not in run.sold_offers)


def handle_merchant(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    run, offers = merchant_stock(ctx)
    if not offers:
        return run, _result(
            "The merchant shrugs. Everything has been sold.",
            next_state=NextState.EXPLORING,
        )
    return run, _result(
        "A travelling merchant spreads out their wares.",
        next_state=NextState.EVENT,
        offers=offers,
    )


def handle_empty(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    if ctx.room.type == RoomType.START:
        return ctx.run, _result(
            "The entrance of the dungeon. Daylight fades behind you.",
            next_state=NextState.EXPLORING,
        )
    return ctx.run, _result("An empty room.", next_state=NextState.EXPLORING)


_HANDLERS: dict[RoomType, Handler] = {
    RoomType.COMBAT: handle_combat,
    RoomType.BOSS: handle_boss,
    RoomType.TRAP: handle_trap,
    RoomType.ALTAR: handle_altar,
    RoomType.MERCHANT: handle_merchant,
    RoomType.CHEST: handle_chest,
    RoomType.EVENT: handle_event,
}


def dispatch(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    """Run the entry handler for ``ctx.room``'s type."""
    handler = _HANDLERS.get(ctx.room.type, handle_empty)
    return handler(ctx)
