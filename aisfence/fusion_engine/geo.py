"""AisFence — Geodesic helpers.

Both functions use the WGS-84 equatorial radius so that the movement
threshold and the subscribed box are measured on the same sphere.
"""

import math

from aisfence.backend.models import BoundingBox, GeoPoint

EARTH_RADIUS_M = 6378137.0

MIN_LAT_RAD = math.radians(-90.0)
MAX_LAT_RAD = math.radians(90.0)
MIN_LON_RAD = math.radians(-180.0)
MAX_LON_RAD = math.radians(180.0)


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters (haversine)."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def bounds_of_distance(center: GeoPoint, radius_m: float) -> BoundingBox:
    """Box whose corners lie radius_m from center along the bounding diagonal.

    Longitudes wrap across the antimeridian. When the box reaches a pole the
    latitudes are clamped and the box spans all longitudes.
    """
    rad_lat = math.radians(center.latitude)
    rad_lon = math.radians(center.longitude)
    rad_dist = radius_m / EARTH_RADIUS_M

    min_lat = rad_lat - rad_dist
    max_lat = rad_lat + rad_dist

    if min_lat > MIN_LAT_RAD and max_lat < MAX_LAT_RAD:
        delta_lon = math.asin(min(1.0, math.sin(rad_dist) / math.cos(rad_lat)))
        min_lon = rad_lon - delta_lon
        if min_lon < MIN_LON_RAD:
            min_lon += 2 * math.pi
        max_lon = rad_lon + delta_lon
        if max_lon > MAX_LON_RAD:
            max_lon -= 2 * math.pi
    else:
        min_lat = max(min_lat, MIN_LAT_RAD)
        max_lat = min(max_lat, MAX_LAT_RAD)
        min_lon = MIN_LON_RAD
        max_lon = MAX_LON_RAD

    return BoundingBox(
        southwest=GeoPoint(latitude=math.degrees(min_lat), longitude=math.degrees(min_lon)),
        northeast=GeoPoint(latitude=math.degrees(max_lat), longitude=math.degrees(max_lon)),
    )
