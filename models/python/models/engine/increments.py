"""
Species-based minimum bid increments (EUR per m³).

The dominant species of a timber lot selects the increment; anything not in
the table, including an empty species, gets ``DEFAULT_INCREMENT_PER_M3``.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

DEFAULT_INCREMENT_PER_M3 = 2.0
DEFAULT_SPECIES = "Amestec"  # mixed stand

SPECIES_INCREMENTS: Dict[str, float] = {
    "Stejar": 3.0,  # oak
    "Gorun": 3.0,   # sessile oak
    "Fag": 2.0,     # beech
    "Molid": 1.0,   # spruce
    "Pin": 1.0,     # pine
}


class SpeciesIncrement(BaseModel):
    species: str
    increment_per_m3: float


class QuickBid(BaseModel):
    label: str
    increment_per_m3: float


def get_increment(dominant_species: Optional[str]) -> float:
    return SPECIES_INCREMENTS.get(dominant_species or "", DEFAULT_INCREMENT_PER_M3)


def next_bid_per_m3(current_price_per_m3: float, dominant_species: Optional[str]) -> float:
    """Lowest valid bid on top of *current_price_per_m3*."""
    return current_price_per_m3 + get_increment(dominant_species)


def is_valid_increment(
    current_price_per_m3: float,
    proposed_price_per_m3: float,
    dominant_species: Optional[str],
) -> bool:
    return proposed_price_per_m3 >= next_bid_per_m3(current_price_per_m3, dominant_species)


def quick_bid_increments(dominant_species: Optional[str]) -> List[QuickBid]:
    """One, two and three times the species increment, for quick-bid buttons."""
    base = get_increment(dominant_species)
    return [
        QuickBid(label=f"+{base * n:g}€/m³", increment_per_m3=base * n)
        for n in (1, 2, 3)
    ]


def species_increments() -> List[SpeciesIncrement]:
    return [
        SpeciesIncrement(species=species, increment_per_m3=increment)
        for species, increment in SPECIES_INCREMENTS.items()
    ]


def projected_total(price_per_m3: float, volume_m3: float) -> float:
    return price_per_m3 * volume_m3


def dominant_species(breakdown: Iterable) -> str:
    """Species with the largest percentage share of the lot.

    Accepts ``SpeciesShare`` models or plain dicts with ``species`` and
    ``percentage`` keys. Ties keep the first listed species.
    """
    best_species, best_share = None, None
    for item in breakdown or []:
        if isinstance(item, dict):
            species, share = item.get("species"), item.get("percentage", 0)
        else:
            species, share = item.species, item.percentage
        if species and (best_share is None or share > best_share):
            best_species, best_share = species, share
    return best_species or DEFAULT_SPECIES
