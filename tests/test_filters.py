import unittest

from app.domain import AvailabilityStatus, Coordinate, PriceType, WorkerProfile
from app.search import (
    SearchFilters,
    apply_eligibility_filters,
    apply_user_filters,
    clear_filters,
    get_active_filter_count,
    get_filter_summary,
    validate_filters,
)

ORIGIN = Coordinate(latitude=19.0760, longitude=72.8777)
# One degree of latitude along a meridian, in km.
KM_PER_DEGREE = 111.19492664455873


def _worker(worker_id, **overrides):
    data = {
        "id": worker_id,
        "primary_skill": "Plumber",
        "location": {"latitude": 19.0860, "longitude": 72.8777},  # ~1.1 km north
        "availability_status": AvailabilityStatus.ONLINE,
        "rating": 4.5,
        "years_of_experience": 5,
        "starting_price": 300,
    }
    data.update(overrides)
    return WorkerProfile(**data)


def _filters(**overrides):
    data = {"skill": "plumber", "location": ORIGIN, "radius": 10}
    data.update(overrides)
    return SearchFilters(**data)


class TestEligibilityFilters(unittest.TestCase):
    def test_hard_filters(self):
        workers = [
            _worker("ok"),
            _worker("secondary-skill", primary_skill="Electrician", skills=["plumber"]),
            _worker("inactive", is_active=False),
            _worker("wrong-skill", primary_skill="Carpenter"),
            _worker("offline", availability_status=AvailabilityStatus.OFFLINE),
            _worker("busy", availability_status=AvailabilityStatus.BUSY),
            _worker("incomplete", profile_completeness=59),
            _worker("too-far", location={"latitude": 19.30, "longitude": 72.8777}),
            _worker("small-area", service_radius_km=1),
        ]
        eligible = apply_eligibility_filters(workers, _filters())
        self.assertEqual([w.id for w in eligible], ["ok", "secondary-skill", "busy"])

    def test_search_radius_applies(self):
        eligible = apply_eligibility_filters([_worker("ok")], _filters(radius=1))
        self.assertEqual(eligible, [])

    def test_radius_checks_use_unrounded_distance(self):
        # 5.04 km displays as 5.0 km but is still outside a 5 km radius
        origin = Coordinate(latitude=0.0, longitude=0.0)
        edge = {"latitude": 5.04 / KM_PER_DEGREE, "longitude": 0.0}
        outside_search = _worker("outside-search", location=edge, service_radius_km=20)
        outside_service = _worker("outside-service", location=edge, service_radius_km=5)
        self.assertEqual(
            apply_eligibility_filters([outside_search], _filters(location=origin, radius=5)), []
        )
        self.assertEqual(
            apply_eligibility_filters([outside_service], _filters(location=origin, radius=10)), []
        )
        inside = _worker("inside", location=edge, service_radius_km=5.1)
        kept = apply_eligibility_filters([inside], _filters(location=origin, radius=5.1))
        self.assertEqual([w.id for w in kept], ["inside"])


class TestUserFilters(unittest.TestCase):
    def test_each_filter(self):
        workers = [
            _worker("busy", availability_status=AvailabilityStatus.BUSY),
            _worker("junior", years_of_experience=1),
            _worker("pricey", starting_price=900),
            _worker("fixed", price_type=PriceType.FIXED),
            _worker("low-rated", rating=3.0),
            _worker("verified", is_verified=True),
        ]
        cases = [
            (_filters(online_only=True), {"busy"}),
            (_filters(min_experience=2), {"junior"}),
            (_filters(max_experience=4), {"busy", "pricey", "fixed", "low-rated", "verified"}),
            (_filters(max_price=500), {"pricey"}),
            (_filters(min_price=500), {"busy", "junior", "fixed", "low-rated", "verified"}),
            (_filters(price_type=PriceType.HOURLY), {"fixed"}),
            (_filters(min_rating=4), {"low-rated"}),
            (_filters(verified_only=True), {"busy", "junior", "pricey", "fixed", "low-rated"}),
        ]
        all_ids = {w.id for w in workers}
        for filters, dropped in cases:
            kept = {w.id for w in apply_user_filters(workers, filters)}
            self.assertEqual(kept, all_ids - dropped, msg=str(filters))


class TestValidateFilters(unittest.TestCase):
    def test_valid(self):
        result = validate_filters(_filters())
        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])

    def test_messages(self):
        result = validate_filters(
            _filters(
                skill=" ",
                radius=150,
                min_experience=5,
                max_experience=2,
                min_price=-1,
                min_rating=6,
            )
        )
        self.assertFalse(result.valid)
        self.assertEqual(
            result.errors,
            [
                "Skill is required",
                "Radius cannot exceed 100km",
                "Min experience cannot exceed max experience",
                "Min price cannot be negative",
                "Rating must be between 0 and 5",
            ],
        )

    def test_zero_radius(self):
        self.assertIn("Valid radius is required", validate_filters(_filters(radius=0)).errors)

    def test_price_range(self):
        errors = validate_filters(_filters(min_price=500, max_price=100)).errors
        self.assertEqual(errors, ["Min price cannot exceed max price"])


class TestFilterHelpers(unittest.TestCase):
    def test_active_count_and_summary(self):
        filters = _filters(
            online_only=True,
            min_experience=2,
            max_price=500,
            price_type=PriceType.HOURLY,
            min_rating=4,
            verified_only=True,
        )
        self.assertEqual(get_active_filter_count(filters), 6)
        self.assertEqual(
            get_filter_summary(filters),
            ["Online only", "2-∞ years exp", "₹0-500", "Hourly rate", "4★+", "Verified only"],
        )

    def test_clear_keeps_core_search(self):
        cleared = clear_filters(_filters(online_only=True, min_rating=4))
        self.assertEqual(get_active_filter_count(cleared), 0)
        self.assertEqual(cleared.skill, "plumber")
        self.assertEqual(cleared.radius, 10)


if __name__ == "__main__":
    unittest.main()
