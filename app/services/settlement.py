# app/services/settlement.py
"""
Return settlement: fees charged when a car comes back.

Diffs the release snapshot against the return inspection and prices the
difference with the fee schedule. Pure and deterministic, so the same
function backs both the fee preview and the committed return.

  gas         (release level - return level) × gas_level_fee, never negative
  equipment   newly missing items × equipment_loss_fee
  damage      minor 1× / major 3× damage_fee
  cleaning    cleaning_fee (+ stain_removal_fee) when returned dirty
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

from app.services.fee_schedule import fee_amount

GAS_LEVELS = {"High": 3, "Mid": 2, "Low": 1}

EQUIPMENT_COMPLETE = "complete"
EQUIPMENT_INCOMPLETE = "incomplete"

DAMAGE_MULTIPLIERS = {"minor": 1, "major": 3}
DAMAGE_LABELS = {"minor": "Minor", "major": "Major"}


@dataclass
class ReturnInputs:
    gas_level: Optional[str] = None
    equipment_status: Optional[str] = None     # complete | incomplete
    equip_others: Optional[str] = None         # comma-separated missing/damaged items
    damage_status: Optional[str] = None        # noDamage | minor | major
    is_clean: bool = True
    has_stain: bool = False


@dataclass
class FeeBreakdown:
    gas_level_fee: float = 0
    equipment_loss_fee: float = 0
    damage_fee: float = 0
    cleaning_fee: float = 0
    missing_items: list = field(default_factory=list)
    total: float = 0

    def to_dict(self) -> dict:
        return asdict(self)


def gas_level_value(level: Optional[str]) -> int:
    if not level:
        return 0
    return GAS_LEVELS.get(level.strip().capitalize(), 0)


def parse_items(text: Optional[str]) -> list[str]:
    """Split a comma-separated item list; trimmed, lower-cased, de-duplicated."""
    items = []
    for raw in (text or "").split(","):
        item = raw.strip().lower()
        if item and item not in items:
            items.append(item)
    return items


def _is_incomplete(status: Optional[str]) -> bool:
    return (status or "").strip().lower() in (EQUIPMENT_INCOMPLETE, "no")


def newly_missing_items(release, inputs: ReturnInputs) -> list[str]:
    """
    Items reported missing at return that were not already missing at release.
    A complete release means every reported item is new.
    """
    if not _is_incomplete(inputs.equipment_status):
        return []
    returned = parse_items(inputs.equip_others)
    if not _is_incomplete(getattr(release, "equipment", None)):
        return returned
    already_missing = set(parse_items(getattr(release, "equip_others", None)))
    return [item for item in returned if item not in already_missing]


def damage_label(damage_status: Optional[str]) -> str:
    return DAMAGE_LABELS.get((damage_status or "").strip().lower(), "No_Damage")


def calculate_return_fees(release, inputs: ReturnInputs, fees: dict) -> FeeBreakdown:
    breakdown = FeeBreakdown()

    released = gas_level_value(getattr(release, "gas_level", None))
    returned = gas_level_value(inputs.gas_level)
    if released and returned and released > returned:
        breakdown.gas_level_fee = (released - returned) * fee_amount(fees, "gas_level_fee")

    breakdown.missing_items = newly_missing_items(release, inputs)
    breakdown.equipment_loss_fee = len(breakdown.missing_items) * fee_amount(fees, "equipment_loss_fee")

    multiplier = DAMAGE_MULTIPLIERS.get((inputs.damage_status or "").strip().lower(), 0)
    breakdown.damage_fee = multiplier * fee_amount(fees, "damage_fee")

    if not inputs.is_clean:
        breakdown.cleaning_fee = fee_amount(fees, "cleaning_fee")
        if inputs.has_stain:
            breakdown.cleaning_fee += fee_amount(fees, "stain_removal_fee")

    breakdown.total = (breakdown.gas_level_fee + breakdown.equipment_loss_fee
                       + breakdown.damage_fee + breakdown.cleaning_fee)
    return breakdown
