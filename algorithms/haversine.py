"""
Haversine Algorithm - Calculate distance between two geographical points
Used to match donors and hospital blood needs by proximity
"""

import math

import numpy as np

# Radius of earth in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance, not road distance.

    Args:
        lat1, lon1: Latitude and longitude of point 1
        lat2, lon2: Latitude and longitude of point 2

    Returns:
        Distance in kilometers
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return c * EARTH_RADIUS_KM


def haversine_distances(lat, lon, lats, lons):
    """
    Vectorised haversine: distance from one point to many points.

    Args:
        lat, lon: Origin point
        lats, lons: Sequences of latitudes and longitudes (same length)

    Returns:
        numpy array of distances in kilometers
    """
    lats = np.radians(np.asarray(lats, dtype=float))
    lons = np.radians(np.asarray(lons, dtype=float))
    lat, lon = math.radians(lat), math.radians(lon)

    a = np.sin((lats - lat) / 2) ** 2 + math.cos(lat) * np.cos(lats) * np.sin((lons - lon) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def bounding_box(lat, lon, radius_km):
    """
    Latitude/longitude box that contains every point within radius_km.
    Used as a cheap SQL prefilter before exact haversine distances.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    # Slightly widened so float rounding never clips points on the circle
    angular = radius_km / EARTH_RADIUS_KM * 1.000001
    dlat = math.degrees(angular)
    min_lat = lat - dlat
    max_lat = lat + dlat

    if min_lat <= -90.0 or max_lat >= 90.0:
        # Circle covers a pole, every longitude qualifies
        return max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0

    ratio = math.sin(angular) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return min_lat, max_lat, -180.0, 180.0

    dlon = math.degrees(math.asin(ratio))
    if lon - dlon < -180.0 or lon + dlon > 180.0:
        # Box crosses the antimeridian
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, lon - dlon, lon + dlon


def find_nearby(lat, lon, items, max_distance):
    """
    Find all items within a specified distance of a point

    Args:
        lat, lon: Origin point (e.g. hospital)
        items: QuerySet or list of objects with latitude/longitude
        max_distance: Maximum distance in km

    Returns:
        List of tuples: (item, distance) sorted by distance (closest first)
    """
    located = [item for item in items if item.latitude is not None and item.longitude is not None]
    if not located:
        return []

    distances = haversine_distances(
        lat,
        lon,
        [item.latitude for item in located],
        [item.longitude for item in located],
    )

    nearby = [
        (item, float(distance))
        for item, distance in zip(located, distances)
        if distance <= max_distance
    ]
    nearby.sort(key=lambda x: x[1])
    return nearby
