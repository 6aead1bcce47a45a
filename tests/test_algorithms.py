from datetime import date, timedelta
from types import SimpleNamespace

import numpy as np
import pytest
from django.utils import timezone

from algorithms.eligibility import has_recovered, is_donor_eligible, notification_radius_km
from algorithms.haversine import bounding_box, find_nearby, haversine_distance, haversine_distances
from algorithms.priority import rank_needs, urgency_rank

KATHMANDU = (27.7172, 85.3240)
POKHARA = (28.2096, 83.9856)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_distance(*KATHMANDU, *KATHMANDU) == 0

    def test_kathmandu_to_pokhara(self):
        distance = haversine_distance(*KATHMANDU, *POKHARA)
        assert 135 < distance < 150

    def test_is_symmetric(self):
        assert haversine_distance(*KATHMANDU, *POKHARA) == pytest.approx(haversine_distance(*POKHARA, *KATHMANDU))

    def test_vectorised_matches_scalar(self):
        lats = [27.72, 28.2096, -33.86, 51.5]
        lons = [85.32, 83.9856, 151.2, -0.12]
        distances = haversine_distances(*KATHMANDU, lats, lons)
        expected = [haversine_distance(*KATHMANDU, la, lo) for la, lo in zip(lats, lons)]
        assert np.allclose(distances, expected)


class TestBoundingBox:
    @pytest.mark.parametrize('origin', [(0.0, 0.0), (27.7, 85.3), (-45.0, 120.0), (70.0, -20.0)])
    @pytest.mark.parametrize('radius', [1.0, 50.0, 400.0])
    def test_contains_every_point_in_radius(self, origin, radius):
        lat, lon = origin
        min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius)

        span = radius / 111.0 * 4
        lats, lons = np.meshgrid(
            np.linspace(max(lat - span, -90), min(lat + span, 90), 81),
            np.linspace(lon - span * 4, lon + span * 4, 161),
        )
        lats, lons = lats.ravel(), lons.ravel()
        inside = haversine_distances(lat, lon, lats, lons) <= radius

        assert inside.any()
        assert (lats[inside] >= min_lat).all() and (lats[inside] <= max_lat).all()
        assert (lons[inside] >= min_lon).all() and (lons[inside] <= max_lon).all()

    def test_near_pole_spans_all_longitudes(self):
        _, max_lat, min_lon, max_lon = bounding_box(89.9, 10.0, 50)
        assert max_lat == 90.0
        assert (min_lon, max_lon) == (-180.0, 180.0)

    def test_antimeridian_spans_all_longitudes(self):
        _, _, min_lon, max_lon = bounding_box(0.0, 179.9, 50)
        assert (min_lon, max_lon) == (-180.0, 180.0)


def test_find_nearby_sorts_and_filters():
    near = SimpleNamespace(name='near', latitude=27.72, longitude=85.32)
    nearer = SimpleNamespace(name='nearer', latitude=27.7172, longitude=85.3241)
    far = SimpleNamespace(name='far', latitude=POKHARA[0], longitude=POKHARA[1])
    unknown = SimpleNamespace(name='unknown', latitude=None, longitude=None)

    result = find_nearby(*KATHMANDU, [near, far, unknown, nearer], 50)

    assert [item.name for item, _ in result] == ['nearer', 'near']
    assert result[0][1] < result[1][1]


def test_find_nearby_empty():
    assert find_nearby(*KATHMANDU, [], 10) == []


class TestRankNeeds:
    def _need(self, urgency, minutes_ago, distance=None):
        return SimpleNamespace(
            urgency_level=urgency,
            posted_at=timezone.now() - timedelta(minutes=minutes_ago),
            distance_km=distance,
        )

    def test_urgency_ranks(self):
        assert [urgency_rank(u) for u in ('critical', 'urgent', 'normal', 'whatever')] == [1, 2, 3, 4]

    def test_urgency_then_newest(self):
        old_critical = self._need('critical', 60)
        new_critical = self._need('critical', 5)
        normal = self._need('normal', 1)
        urgent = self._need('urgent', 30)

        ranked = rank_needs([normal, old_critical, urgent, new_critical])

        assert ranked == [new_critical, old_critical, urgent, normal]

    def test_distance_before_age_for_donors(self):
        far_new = self._need('urgent', 1, distance=40.0)
        near_old = self._need('urgent', 90, distance=2.0)
        unknown = self._need('urgent', 0, distance=None)
        critical_far = self._need('critical', 100, distance=99.0)

        ranked = rank_needs([unknown, far_new, near_old, critical_far], by_distance=True)

        assert ranked == [critical_far, near_old, far_new, unknown]


class TestEligibility:
    def _donor(self, **fields):
        defaults = dict(
            is_available_for_alerts=True,
            blood_type='O-',
            last_donation_date=None,
            latitude=27.7,
            longitude=85.3,
        )
        defaults.update(fields)
        return SimpleNamespace(**defaults)

    def test_never_donated_is_recovered(self):
        assert has_recovered(self._donor())

    def test_interval_boundary(self, settings):
        settings.DONATION_INTERVAL_DAYS = 56
        today = date(2024, 6, 1)
        assert not has_recovered(self._donor(last_donation_date=today - timedelta(days=56)), today)
        assert has_recovered(self._donor(last_donation_date=today - timedelta(days=57)), today)

    def test_interval_is_configurable(self, settings):
        settings.DONATION_INTERVAL_DAYS = 90
        today = date(2024, 6, 1)
        assert not has_recovered(self._donor(last_donation_date=today - timedelta(days=60)), today)

    @pytest.mark.parametrize('fields', [
        {'is_available_for_alerts': False},
        {'blood_type': 'O+'},
        {'latitude': None},
        {'last_donation_date': date.today()},
    ])
    def test_ineligible(self, fields):
        need = SimpleNamespace(blood_type='O-')
        assert not is_donor_eligible(self._donor(**fields), need)

    def test_eligible(self):
        assert is_donor_eligible(self._donor(), SimpleNamespace(blood_type='O-'))

    def test_radius_by_urgency(self, settings):
        settings.NOTIFICATION_RADIUS_KM = {'critical': 50.0, 'urgent': 100.0}
        assert notification_radius_km('critical') == 50.0
        assert notification_radius_km('urgent') == 100.0
        assert notification_radius_km('normal') is None
