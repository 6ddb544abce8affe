# donations/utils/distance.py
"""
Distance utilities for matching volunteers to pickups.

Straight-line distance is a great-circle (Haversine) distance on a sphere of
radius 6371 km. Route distance, travel time and fuel cost are heuristics
derived from it, not the output of a routing engine: treat them as
approximate.
"""

from typing import Dict, Optional

from geopy.distance import great_circle

EARTH_RADIUS_KM = 6371

# Road networks are longer than the straight line between two points
ROUTE_FACTORS = {
    'urban': 1.4,
    'suburban': 1.2,
    'rural': 1.1,
}

# Average speeds in km/h
TRAVEL_SPEEDS = {
    'car': 40,
    'bike': 15,
    'walk': 5,
}

# km per litre
FUEL_EFFICIENCY = {
    '2-wheeler': 35,
    '4-wheeler': 15,
    'none': 0,
}
FUEL_PRICE_PER_LITRE = 100
DEFAULT_FUEL_EFFICIENCY = 15

CLOSE, MODERATE, FAR, VERY_FAR = 'close', 'moderate', 'far', 'very_far'


def validate_coordinates(lat: float, lon: float) -> None:
    """Out-of-range coordinates are rejected, never clamped."""
    if lat is None or lon is None:
        raise ValueError("Latitude and longitude are required.")
    if not -90 <= lat <= 90:
        raise ValueError(f"Latitude {lat} is outside [-90, 90].")
    if not -180 <= lon <= 180:
        raise ValueError(f"Longitude {lon} is outside [-180, 180].")


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    validate_coordinates(lat1, lon1)
    validate_coordinates(lat2, lon2)
    return great_circle((lat1, lon1), (lat2, lon2), radius=EARTH_RADIUS_KM).km


def route_distance_km(straight_km: float, area_type: str = 'urban') -> float:
    """Approximate road distance by inflating the straight-line distance."""
    try:
        return straight_km * ROUTE_FACTORS[area_type]
    except KeyError:
        raise ValueError(f"Unknown area type '{area_type}'.") from None


def travel_time_minutes(route_km: float, mode: str = 'car') -> int:
    try:
        speed = TRAVEL_SPEEDS[mode]
    except KeyError:
        raise ValueError(f"Unknown transport mode '{mode}'.") from None
    return round(route_km / speed * 60)


def distance_category(route_km: float) -> str:
    if route_km <= 5:
        return CLOSE
    if route_km <= 15:
        return MODERATE
    if route_km <= 30:
        return FAR
    return VERY_FAR


def fuel_cost(route_km: float, vehicle_type: str = '4-wheeler') -> int:
    """Rough fuel cost of a trip; zero when the volunteer has no vehicle."""
    efficiency = FUEL_EFFICIENCY.get(vehicle_type, DEFAULT_FUEL_EFFICIENCY)
    if efficiency == 0:
        return 0
    return round(route_km / efficiency * FUEL_PRICE_PER_LITRE)


class Location:
    """Represents a geographic location with coordinates and metadata"""
    def __init__(self, lat: Optional[float], lon: Optional[float], name: str = ''):
        self.lat = lat
        self.lon = lon
        self.name = name

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def distance_to(self, other: 'Location') -> float:
        """Great-circle distance to another location in kilometres"""
        return distance_km(self.lat, self.lon, other.lat, other.lon)


def distance_summary(origin: Location, destination: Location, area_type: str = 'urban',
                     mode: str = 'car', vehicle_type: str = '4-wheeler') -> Dict:
    """
    Everything a volunteer needs to judge a pickup: straight and route
    distance, travel time, distance category and fuel cost.
    """
    straight = origin.distance_to(destination)
    route = route_distance_km(straight, area_type)
    return {
        'straight_km': round(straight, 2),
        'route_km': round(route, 2),
        'travel_time_minutes': travel_time_minutes(route, mode),
        'category': distance_category(route),
        'fuel_cost': fuel_cost(route, vehicle_type),
        'approximate': True,
    }
