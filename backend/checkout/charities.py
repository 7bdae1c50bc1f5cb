"""Static charity catalogs offered by the checkout form."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

ALL_CHARITIES = "all_charities"


@dataclass(frozen=True, slots=True)
class Charity:
    code: str
    display_name: str
    tax_eligible: bool = False


class CharityCatalog:
    """Immutable code -> charity mapping.

    Membership is enforced by the donation validator; ``display_name`` falls
    back to the raw code so metadata can still be written for unknown codes.
    """

    def __init__(self, charities: Iterable[Charity]) -> None:
        entries: dict[str, Charity] = {}
        for charity in charities:
            if charity.code in entries:
                raise ValueError(f"duplicate charity code '{charity.code}'")
            entries[charity.code] = charity
        if ALL_CHARITIES not in entries:
            raise ValueError(f"catalog must include the '{ALL_CHARITIES}' aggregate")
        self._entries = entries

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._entries

    def __iter__(self) -> Iterator[Charity]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def is_valid(self, code: str | None) -> bool:
        return bool(code) and code in self._entries

    def display_name(self, code: str) -> str:
        charity = self._entries.get(code)
        return charity.display_name if charity else code

    def codes(self) -> list[str]:
        return list(self._entries)

    def tax_eligible_codes(self) -> list[str]:
        return [c.code for c in self._entries.values() if c.tax_eligible]


FULL_CATALOG = CharityCatalog(
    [
        Charity(ALL_CHARITIES, "All charities fund", tax_eligible=True),
        Charity("against_malaria", "Against Malaria Foundation", tax_eligible=True),
        Charity("ai_safety_center", "Centre pour la Sécurité de l'IA", tax_eligible=True),
        Charity("good_food_institute", "Good Food Institute", tax_eligible=True),
        Charity("helen_keller", "Helen Keller International", tax_eligible=True),
        Charity("new_incentives", "New Incentives"),
        Charity("preserving_future", "Preserving the future fund"),
        Charity("humane_league", "The Humane League"),
    ]
)

# Older deployments shipped without the "Preserving the future" fund.
CORE_CATALOG = CharityCatalog(c for c in FULL_CATALOG if c.code != "preserving_future")

CATALOGS: dict[str, CharityCatalog] = {
    "full": FULL_CATALOG,
    "core": CORE_CATALOG,
}


def get_catalog(name: str) -> CharityCatalog:
    try:
        return CATALOGS[name]
    except KeyError:
        raise ValueError(f"Unknown charity catalog '{name}'") from None


__all__ = [
    "ALL_CHARITIES",
    "CATALOGS",
    "CORE_CATALOG",
    "Charity",
    "CharityCatalog",
    "FULL_CATALOG",
    "get_catalog",
]
