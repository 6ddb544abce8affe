# donations/utils/__init__.py
from .distance import (
    Location,
    distance_km,
    distance_category,
    distance_summary,
    fuel_cost,
    route_distance_km,
    travel_time_minutes,
)
from .geocoding import Geocoder

__all__ = [
    'Location',
    'distance_km',
    'distance_category',
    'distance_summary',
    'fuel_cost',
    'route_distance_km',
    'travel_time_minutes',
    'Geocoder',
]
