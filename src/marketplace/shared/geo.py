"""GeoPoint value object and great-circle distance."""

from math import asin, cos, radians, sin, sqrt

from protean.fields import Float

from marketplace.domain import marketplace

EARTH_RADIUS_KM = 6371.0


@marketplace.value_object
class GeoPoint:
    """A WGS84 coordinate."""

    latitude: Float(required=True, min_value=-90.0, max_value=90.0)
    longitude: Float(required=True, min_value=-180.0, max_value=180.0)


def haversine_km(origin: GeoPoint, destination: GeoPoint) -> float:
    lat1, lon1 = radians(origin.latitude), radians(origin.longitude)
    lat2, lon2 = radians(destination.latitude), radians(destination.longitude)

    a = sin((lat2 - lat1) / 2) ** 2 + cos(lat1) * cos(lat2) * sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(sqrt(a))
