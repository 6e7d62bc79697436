"""Haversine distance sanity checks."""

import math
import random

import pytest

from appointment_lifecycle.errors import InvalidCoordinate
from appointment_lifecycle.services.geo import haversine_meters, validate_coordinate

from conftest import HOSPITAL_LAT, HOSPITAL_LON, point_north


def random_point(rng: random.Random) -> tuple[float, float]:
    return rng.uniform(-90, 90), rng.uniform(-180, 180)


class TestHaversine:
    def test_distance_to_self_is_zero(self):
        rng = random.Random(7)
        for _ in range(200):
            lat, lon = random_point(rng)
            assert haversine_meters(lat, lon, lat, lon) == 0

    def test_distance_is_symmetric(self):
        rng = random.Random(11)
        for _ in range(200):
            a = random_point(rng)
            b = random_point(rng)
            assert haversine_meters(*a, *b) == haversine_meters(*b, *a)

    def test_triangle_inequality_within_rounding(self):
        rng = random.Random(13)
        for _ in range(200):
            a, b, c = random_point(rng), random_point(rng), random_point(rng)
            # Each leg is floored, so allow a couple of meters of slack
            assert haversine_meters(*a, *c) <= haversine_meters(*a, *b) + haversine_meters(*b, *c) + 2

    def test_known_distance_london_paris(self):
        distance = haversine_meters(51.5074, -0.1278, 48.8566, 2.3522)
        assert 343_000 <= distance <= 344_500

    def test_result_is_floored_integer(self):
        lat, lon = point_north(20)
        distance = haversine_meters(lat, lon, HOSPITAL_LAT, HOSPITAL_LON)
        assert isinstance(distance, int)
        assert distance == 20

    def test_antipodal_points(self):
        distance = haversine_meters(0, 0, 0, 180)
        assert distance == math.floor(math.pi * 6_371_000)

    def test_range_edges_are_accepted(self):
        assert haversine_meters(90, 180, -90, -180) > 0


class TestCoordinateValidation:
    @pytest.mark.parametrize(
        "lat,lon",
        [(90.0001, 0), (-91, 0), (0, 180.5), (0, -181), (float("nan"), 0), (0, float("nan"))],
    )
    def test_out_of_range_coordinates_raise(self, lat, lon):
        with pytest.raises(InvalidCoordinate):
            haversine_meters(lat, lon, 0, 0)

    def test_non_numeric_coordinates_raise(self):
        with pytest.raises(InvalidCoordinate):
            validate_coordinate("north", 0)

    def test_error_names_offending_field(self):
        with pytest.raises(InvalidCoordinate) as exc_info:
            validate_coordinate(12.0, 200.0)
        assert exc_info.value.details == {"longitude": 200.0}
        assert exc_info.value.kind == "invalid_coordinate"
