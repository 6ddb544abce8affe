# donations/utils/priority.py
"""
Pure classification helpers over a donation's item mix and text.
None of these touch the database; they only read attributes.
"""

from django.db.models import Case, IntegerField, Value, When

from ..models import PRIORITY_RANK, Priority

UNIVERSAL_KEYWORDS = ('food', 'medicine', 'medical', 'water')

CRITICAL_KEYWORDS = (
    'medicine', 'injection', 'vaccine', 'insulin', 'oxygen', 'blood', 'plasma',
    'emergency', 'urgent', 'critical', 'medical', 'hospital', 'baby food', 'infant',
)

# Checked in order, first match wins
PRIORITY_RULES = (
    (Priority.CRITICAL, 'Life-saving items require immediate attention',
     ('medicine', 'medication', 'drug', 'injection', 'vaccine', 'insulin', 'oxygen',
      'blood', 'plasma', 'emergency', 'urgent', 'critical')),
    (Priority.HIGH, 'Food items spoil quickly and need fast delivery',
     ('food', 'meal', 'bread', 'milk', 'vegetable', 'fruit', 'meat', 'fish', 'dairy',
      'perishable', 'fresh', 'cooked', 'hot')),
    (Priority.MEDIUM, 'Essential items for daily living',
     ('clothes', 'clothing', 'shirt', 'pants', 'dress', 'jacket', 'blanket', 'bedding',
      'towel', 'school', 'kit', 'stationary', 'uniform')),
    (Priority.LOW, 'Non-essential items can wait',
     ('book', 'toy', 'game', 'entertainment', 'luxury', 'decoration', 'ornament', 'gift',
      'novel', 'magazine', 'cd', 'dvd')),
)

def _donation_text(donation):
    parts = [
        getattr(donation, 'description', '') or '',
        getattr(donation, 'custom_description', '') or '',
        getattr(donation, 'custom_item_name', '') or '',
    ]
    return ' '.join(parts).lower()

def is_universal(donation):
    """Food and grains always count; custom items count when described as food, medicine or water."""
    if (getattr(donation, 'grains', 0) or 0) > 0:
        return True
    if getattr(donation, 'is_custom_item', False):
        text = (getattr(donation, 'custom_description', '') or '').lower()
        return any(keyword in text for keyword in UNIVERSAL_KEYWORDS)
    return False

def is_critical(donation):
    """Critical donations bypass an NGO's daily approval cap."""
    if (getattr(donation, 'priority', '') or '').lower() == Priority.CRITICAL:
        return True
    if (getattr(donation, 'grains', 0) or 0) > 0:
        return True
    text = _donation_text(donation)
    return any(keyword in text for keyword in CRITICAL_KEYWORDS)

def suggest_priority(item_name='', description='', category=''):
    """
    Suggest a priority from free text using keyword rules.
    Confidence grows with the number of matched keywords.
    """
    search_text = f"{item_name} {description} {category}".lower()

    for priority, reason, keywords in PRIORITY_RULES:
        matches = sum(1 for keyword in keywords if keyword in search_text)
        if matches:
            return {
                'suggested_priority': priority.value,
                'reason': reason,
                'confidence': min(0.95, 0.6 + 0.1 * matches),
                'source': 'keywords',
            }

    return {
        'suggested_priority': Priority.MEDIUM.value,
        'reason': 'Standard priority for general donations',
        'confidence': 0.5,
        'source': 'default',
    }

def priority_order():
    """ORM expression ranking critical=1 .. low=4, unknown last."""
    return Case(
        *[When(priority=priority, then=Value(rank)) for priority, rank in PRIORITY_RANK.items()],
        default=Value(5),
        output_field=IntegerField(),
    )
