"""Sub-flow resolution for rooms that opened a battle or an event.

Each resolver takes the :class:`RoomContext` of the pending room plus the
player's choice and returns the updated run and a :class:`RoomResult`.
Returning ``next_state=EVENT`` keeps the room pending (the merchant stays
open after a purchase, an unaffordable action changes nothing); any other
value lets the run manager mark the room resolved.

Loot found in rooms (enemy gold and exp, materials, potion gold) is banked
on the run and paid out through the reward calculator on exit.  Health,
mana and merchant trades are immediate ``changes`` for the host.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from delve.catalog.affixes import AffixContext, apply_affix_effect
from delve.catalog.rooms import GoalItemKind, RoomType
from delve.sim.core.entities import Item, StateDelta
from delve.sim.dungeon.handlers import RoomContext, claim_goal_item
from delve.sim.dungeon.resources import (
    TorchAction,
    TorchEvent,
    apply_torch_event,
    restore,
    spend_for_action,
)
from delve.sim.dungeon.state import (
    NextState,
    PendingEncounter,
    RoomResult,
    RunState,
    RunStatus,
)

logger = logging.getLogger(__name__)

BATTLE_MATERIALS = 1
BOSS_MATERIALS = 2
BASE_CHEST_LOOT = 2

ALTAR_HEAL_FRACTION = 0.5
ALTAR_MANA_FRACTION = 0.3
BLESSING_HEAL_FRACTION = 0.3
BLESSING_MANA_FRACTION = 0.2

TRAP_DAMAGE_RANGE = (10, 29)
DISARM_DAMAGE_RANGE = (5, 19)
TRAP_DETECTION_COST = 1

class AltarBlessing(str, Enum):
    HEAL = "heal"
    MANA = "mana"
    BLESSING = "blessing"
    LIGHT = "light"


class TrapAction(str, Enum):
    TRIGGER = "trigger"
    DISARM = "disarm"
    DETECT = "detect"


class PotionEffect(str, Enum):
    HEAL = "heal"
    MANA = "mana"
    DAMAGE = "damage"
    GOLD = "gold"
    EXP = "exp"
    FIND_TORCH = "find_torch"
    LOSE_TORCH = "lose_torch"


# (effect, amount, log line)
_POTION_TABLE: list[tuple[PotionEffect, int, str]] = [
    (PotionEffect.HEAL, 30, "The potion soothes your wounds (+30 health)."),
    (PotionEffect.MANA, 20, "Your mind clears (+20 mana)."),
    (PotionEffect.DAMAGE, 15, "The potion burns your throat (-15 health)."),
    (PotionEffect.GOLD, 50, "Coins rattle at the bottom of the flask (+50 gold)."),
    (PotionEffect.EXP, 25, "Visions of old battles teach you something (+25 exp)."),
    (PotionEffect.FIND_TORCH, 1, ""),
    (PotionEffect.LOSE_TORCH, 1, ""),
]


def _result(*log: str, **fields) -> RoomResult:
    return RoomResult(log=tuple(log), **fields)


def _stay(ctx: RoomContext, *log: str) -> tuple[RunState, RoomResult]:
    """No effect: the room stays pending and the run is unchanged."""
    return ctx.run, _result(*log, next_state=NextState.EVENT, effective=False)


# ---------------------------------------------------------------------------
# Battle
# ---------------------------------------------------------------------------

def resolve_battle(
    ctx: RoomContext, pending: PendingEncounter, victory: bool,
) -> tuple[RunState, RoomResult]:
    """Apply the host's combat outcome to the pending battle."""
    enemy = pending.enemy
    is_boss = ctx.room.type == RoomType.BOSS
    if not victory:
        run = ctx.run.model_copy(update={"status": RunStatus.FAILED})
        name = enemy.name if enemy is not None else "the enemy"
        return run, _result(f"You fall before {name}. The expedition is over.")

    exp = 0
    gold = 0
    if enemy is not None:
        exp = apply_affix_effect(ctx.run.affixes, AffixContext.COMBAT_EXP, enemy.experience)
        gold = enemy.gold
    count = BOSS_MATERIALS if is_boss else BATTLE_MATERIALS
    materials = tuple(ctx.provider.generate_materials(ctx.room.index, is_boss, count))

    run = ctx.run.with_room(ctx.room.with_flags(defeated=True))
    run = run.bank(gold=gold, exp=exp, items=materials)
    log = [f"Victory! You earn {gold} gold and {exp} experience."]
    log += [f"Loot: {m.name}" for m in materials]

    run, goal_message = claim_goal_item(run, ctx.room.id)
    if goal_message:
        log.append(goal_message)
    if is_boss:
        run = run.model_copy(update={"status": RunStatus.COMPLETED})
        log.append("The boss is slain. The dungeon is conquered!")

    return run, _result(
        *log,
        banked=StateDelta(gold=gold, exp=exp, items=materials),
        next_state=NextState.EXPLORING,
    )


# ---------------------------------------------------------------------------
# Altar
# ---------------------------------------------------------------------------

def use_altar(ctx: RoomContext, blessing: AltarBlessing) -> tuple[RunState, RoomResult]:
    player = ctx.player
    affixes = ctx.run.affixes
    run = ctx.run.with_room(ctx.room.with_flags(used=True))
    blessing = AltarBlessing(blessing)

    if blessing is AltarBlessing.LIGHT:
        run = run.model_copy(update={"resource": restore(run.resource, 1)})
        return run, _result(
            f"The altar rekindles a torch ({run.resource.torches} total).",
            next_state=NextState.EXPLORING,
        )

    if blessing is AltarBlessing.HEAL:
        heal = math.floor(player.max_health * ALTAR_HEAL_FRACTION)
        mana = 0
    elif blessing is AltarBlessing.MANA:
        heal = 0
        mana = math.floor(player.max_mana * ALTAR_MANA_FRACTION)
    else:
        heal = math.floor(player.max_health * BLESSING_HEAL_FRACTION)
        mana = math.floor(player.max_mana * BLESSING_MANA_FRACTION)
    heal = apply_affix_effect(affixes, AffixContext.ALTAR_HEAL, heal)

    parts = []
    if heal:
        parts.append(f"+{heal} health")
    if mana:
        parts.append(f"+{mana} mana")
    return run, _result(
        f"Light washes over you ({', '.join(parts) or 'nothing happens'}).",
        changes=StateDelta(health=heal, mana=mana),
        next_state=NextState.EXPLORING,
    )


# ---------------------------------------------------------------------------
# Trap
# ---------------------------------------------------------------------------

def resolve_trap(ctx: RoomContext, action: TrapAction) -> tuple[RunState, RoomResult]:
    player = ctx.player
    action = TrapAction(action)

    if action is TrapAction.DETECT:
        resource = spend_for_action(
            ctx.run.resource, TRAP_DETECTION_COST, TorchAction.TRAP_DETECTION,
        )
        if resource is None:
            return _stay(ctx, "You have no torch to spare for searching.")
        run = ctx.run.with_room(ctx.room.with_flags(used=True))
        run = run.model_copy(update={"resource": resource})
        return run, _result(
            "By torchlight you find the mechanism and step around it.",
            next_state=NextState.EXPLORING,
        )

    if action is TrapAction.TRIGGER:
        damage = ctx.rng.random_int(*TRAP_DAMAGE_RANGE)
        avoided = ctx.rng.chance(player.dexterity / 100)
        message = "You leap aside as the blades swing past."
    else:
        avoided = ctx.rng.chance((player.dexterity + player.luck) / 200)
        damage = ctx.rng.random_int(*DISARM_DAMAGE_RANGE)
        message = "You carefully disarm the trap."

    run = ctx.run.with_room(ctx.room.with_flags(used=True))
    if avoided:
        return run, _result(message, next_state=NextState.EXPLORING)

    damage = apply_affix_effect(ctx.run.affixes, AffixContext.TRAP_DAMAGE, damage)
    return run, _result(
        f"The trap catches you for {damage} damage.",
        changes=StateDelta(health=-damage),
        next_state=NextState.EXPLORING,
    )


# ---------------------------------------------------------------------------
# Chest
# ---------------------------------------------------------------------------

def open_chest(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    affixes = ctx.run.affixes
    count = apply_affix_effect(affixes, AffixContext.CHEST_LOOT, BASE_CHEST_LOOT)
    legendary_chance = apply_affix_effect(affixes, AffixContext.LEGENDARY_CHANCE, 0.0)

    materials: list[Item] = []
    for _ in range(count):
        # A legendary roll draws from the boss pool, the only one holding them.
        boss_grade = ctx.rng.chance(legendary_chance)
        material = ctx.provider.generate_material(ctx.room.index, boss_grade)
        if material is not None:
            materials.append(material)

    run = ctx.run.with_room(ctx.room.with_flags(looted=True))
    run = run.bank(items=tuple(materials))
    log = [f"You open the chest and find: {m.name}" for m in materials]
    if not materials:
        log.append("The chest held nothing but dust.")

    run, goal_message = claim_goal_item(run, ctx.room.id)
    if goal_message:
        log.append(goal_message)
    return run, _result(
        *log, banked=StateDelta(items=tuple(materials)), next_state=NextState.EXPLORING,
    )


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------

def resolve_event(ctx: RoomContext) -> tuple[RunState, RoomResult]:
    """Rescue the prisoner if one is held here, else drink the mystery potion."""
    run = ctx.run.with_room(ctx.room.with_flags(used=True))
    if ctx.room.goal_item is GoalItemKind.PRISONER:
        run, goal_message = claim_goal_item(run, ctx.room.id)
        log = ["You break the lock on a cell door."]
        if goal_message:
            log.append(goal_message)
        return run, _result(*log, next_state=NextState.EXPLORING)

    effect, amount, message = ctx.rng.random_choice(_POTION_TABLE)
    changes = StateDelta()
    banked = StateDelta()
    if effect is PotionEffect.HEAL:
        changes = StateDelta(health=amount)
    elif effect is PotionEffect.MANA:
        changes = StateDelta(mana=amount)
    elif effect is PotionEffect.DAMAGE:
        changes = StateDelta(health=-amount)
    elif effect is PotionEffect.GOLD:
        banked = StateDelta(gold=amount)
    elif effect is PotionEffect.EXP:
        banked = StateDelta(exp=amount)
    else:
        resource, message = apply_torch_event(run.resource, TorchEvent(effect.value))
        run = run.model_copy(update={"resource": resource})

    run = run.bank(gold=banked.gold, exp=banked.exp)
    return run, _result(
        "You find a strange potion and drink it.",
        message,
        changes=changes,
        banked=banked,
        next_state=NextState.EXPLORING,
    )


# ---------------------------------------------------------------------------
# Merchant
# ---------------------------------------------------------------------------

def trade(
    ctx: RoomContext, pending: PendingEncounter, offer_id: str,
) -> tuple[RunState, RoomResult]:
    """Buy one offer from the pending merchant.  The shop stays open."""
    offer = next((o for o in pending.offers if o.id == offer_id), None)
    if offer is None:
        return _stay(ctx, "The merchant has nothing like that.")
    if ctx.player.gold < offer.price:
        return _stay(ctx, f"You cannot afford {offer.label} ({offer.price} gold).")

    run = ctx.run
    items: tuple[Item, ...] = ()
    if offer.torches:
        if run.resource.torches >= run.resource.max_torches:
            return _stay(ctx, "You cannot carry another torch.")
        run = run.model_copy(update={"resource": restore(run.resource, offer.torches)})
    if offer.item is not None:
        items = (offer.item,)

    remaining = tuple(o for o in pending.offers if o.id != offer.id)
    run = run.model_copy(update={
        "sold_offers": run.sold_offers + (offer.id,),
        "pending": pending.model_copy(update={"offers": remaining}),
    })
    return run, _result(
        f"You buy {offer.label} for {offer.price} gold.",
        changes=StateDelta(gold=-offer.price, items=items),
        next_state=NextState.EVENT,
        offers=remaining,
    )


def leave_room(ctx: RoomContext, pending: PendingEncounter) -> tuple[RunState, RoomResult]:
    """Walk away from the pending sub-flow without any reward."""
    if pending.kind is NextState.BATTLE:
        message = "You slip away before the fight begins."
    elif ctx.room.type == RoomType.MERCHANT:
        message = "You bid the merchant farewell."
    else:
        message = "You leave the room as it is."
    return ctx.run, _result(message, next_state=NextState.EXPLORING)
