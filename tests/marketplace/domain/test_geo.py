import pytest
from marketplace.shared.geo import GeoPoint, haversine_km
from protean.exceptions import ValidationError

KIGALI = GeoPoint(latitude=-1.9441, longitude=30.0619)
HUYE = GeoPoint(latitude=-2.5967, longitude=29.7394)


def test_distance_to_self_is_zero():
    assert haversine_km(KIGALI, KIGALI) == 0.0


def test_distance_is_symmetric():
    assert haversine_km(KIGALI, HUYE) == pytest.approx(haversine_km(HUYE, KIGALI))


def test_kigali_to_huye():
    assert haversine_km(KIGALI, HUYE) == pytest.approx(80.9, abs=1.0)


def test_one_degree_of_longitude_at_equator():
    assert haversine_km(GeoPoint(latitude=0, longitude=0), GeoPoint(latitude=0, longitude=1)) == pytest.approx(
        111.19, abs=0.01
    )


@pytest.mark.parametrize("latitude, longitude", [(91, 0), (-91, 0), (0, 181), (0, -181)])
def test_out_of_range_coordinates_rejected(latitude, longitude):
    with pytest.raises(ValidationError):
        GeoPoint(latitude=latitude, longitude=longitude)
