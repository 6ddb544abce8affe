# donations/services/specialization.py
"""
Which NGO types may approve which donations.
"""

from dataclasses import dataclass
from enum import Enum

from ..models import ITEM_CATEGORIES, NGOType
from ..utils.priority import is_universal

ALL_ITEMS = frozenset(ITEM_CATEGORIES)


class MatchType(str, Enum):
    MULTI_PURPOSE = 'multi_purpose'
    UNIVERSAL = 'universal'
    SPECIALIZED = 'specialized'
    NONE = 'none'


class Specialization(Enum):
    """Closed set of NGO types, each carrying the items it specializes in."""

    FOOD = (NGOType.FOOD, frozenset({'grains', 'food', 'water'}))
    CLOTHING = (NGOType.CLOTHING, frozenset({'clothes', 'footwear', 'blankets'}))
    EDUCATION = (NGOType.EDUCATION, frozenset({'books', 'toys', 'school_supplies'}))
    MEDICAL = (NGOType.MEDICAL, frozenset({'medicine', 'medical', 'health'}))
    ELDERLY_CARE = (NGOType.ELDERLY_CARE, frozenset({'food', 'medicine', 'clothes'}))
    MULTI_PURPOSE = (NGOType.MULTI_PURPOSE, ALL_ITEMS)
    UNKNOWN = ('unknown', frozenset())

    def __init__(self, ngo_type, items):
        self.ngo_type = ngo_type
        self.items = items

    @classmethod
    def for_ngo_type(cls, ngo_type):
        for member in cls:
            if member is not cls.UNKNOWN and member.ngo_type == ngo_type:
                return member
        return cls.UNKNOWN

    @property
    def label(self):
        if self is Specialization.UNKNOWN:
            return 'Unknown NGO type'
        return NGOType(self.ngo_type).label


@dataclass(frozen=True)
class SpecializationVerdict:
    allowed: bool
    reason: str
    match_type: MatchType

    def to_dict(self):
        return {'allowed': self.allowed, 'reason': self.reason, 'match_type': self.match_type.value}


def _matches_specialization(donation, items):
    for category in ITEM_CATEGORIES:
        if (getattr(donation, category, 0) or 0) > 0 and category in items:
            return True
    if getattr(donation, 'is_custom_item', False):
        text = (getattr(donation, 'custom_description', '') or '').lower()
        return any(item in text for item in items)
    return False


class SpecializationMatcher:
    """Decides whether an NGO type may approve a donation's item mix. First rule that matches wins."""

    def can_approve(self, ngo_type, can_accept_universal, donation):
        specialization = Specialization.for_ngo_type(ngo_type)

        if specialization is Specialization.MULTI_PURPOSE:
            return SpecializationVerdict(True, 'Multi-purpose NGO - Can approve all items', MatchType.MULTI_PURPOSE)

        if specialization is Specialization.UNKNOWN:
            return SpecializationVerdict(False, 'Unknown NGO type', MatchType.NONE)

        if can_accept_universal and is_universal(donation):
            return SpecializationVerdict(True, 'Universal item - All NGOs can approve', MatchType.UNIVERSAL)

        if _matches_specialization(donation, specialization.items):
            return SpecializationVerdict(True, f'{specialization.label} - Specialization match', MatchType.SPECIALIZED)

        return SpecializationVerdict(False, f'{specialization.label} - Outside your specialization', MatchType.NONE)

    def can_ngo_approve(self, ngo, donation):
        return self.can_approve(ngo.ngo_type, ngo.can_accept_universal, donation)

    def allowed_items(self, ngo_type, can_accept_universal):
        specialization = Specialization.for_ngo_type(ngo_type)
        items = set(specialization.items)
        if can_accept_universal and specialization is not Specialization.UNKNOWN:
            items.update({'grains', 'food', 'medicine', 'medical', 'water'})
        return sorted(items)
