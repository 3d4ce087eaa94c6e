import unittest

import redis
from fastapi.testclient import TestClient

from app import api as api_mod
from app import app_state
from app.config import settings
from app.domain import AvailabilityStatus, WorkerProfile
from app.location_providers import StaticDeviceLocationProvider
from app.main import app as fastapi_app
from app.worker_sources import InMemoryWorkerDirectory


class KeySet:
    def __init__(self, keys, down=False):
        self.keys = keys
        self.down = down

    def sismember(self, name, value):
        if self.down:
            raise redis.ConnectionError("connection refused")
        return value in self.keys


class FailingDelivery:
    async def deliver(self, worker_id, message):
        return False


def _worker(worker_id, latitude, status=AvailabilityStatus.ONLINE, skill="plumber"):
    return WorkerProfile(
        id=worker_id,
        primary_skill=skill,
        location={"latitude": latitude, "longitude": 72.8777},
        availability_status=status,
        rating=4.5,
        response_time_minutes=10,
        completion_rate=95,
        total_jobs_completed=40,
    )


def _directory():
    return InMemoryWorkerDirectory([
        _worker("far", 19.2760),
        _worker("mid", 19.1060, status=AvailabilityStatus.BUSY),
        _worker("near", 19.0860),
        _worker("off", 19.0800, status=AvailabilityStatus.OFFLINE),
        _worker("sparky", 19.0900, skill="electrician"),
    ])


class TestApi(unittest.TestCase):
    def setUp(self):
        self._orig_api_key = settings.api_key
        self._orig_key_store = api_mod._key_store
        settings.api_key = None
        self._install()

    def tearDown(self):
        settings.api_key = self._orig_api_key
        api_mod._key_store = self._orig_key_store
        fastapi_app.dependency_overrides.clear()
        app_state.set_app_state(None)

    def _install(self, **overrides):
        overrides.setdefault("workers", _directory())
        self.state = app_state.use_in_memory_state_for_tests(**overrides)
        fastapi_app.dependency_overrides[api_mod.get_state] = lambda: self.state
        self.client = TestClient(fastapi_app)

    # -- location ----------------------------------------------------------

    def test_location_defaults_to_reference_city(self):
        resp = self.client.get("/v1/location")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["location"]["city"], "Mumbai")
        self.assertFalse(body["permission_granted"])

    def test_manual_location_round_trip(self):
        payload = {"latitude": 18.5204, "longitude": 73.8567, "city": "Pune", "area": "Kothrud", "country": "India"}
        resp = self.client.put("/v1/location", json=payload)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/v1/location").json()["location"], payload)

    def test_manual_location_validates_coordinates(self):
        resp = self.client.put("/v1/location", json={"latitude": 123, "longitude": 0, "city": "Nowhere"})
        self.assertEqual(resp.status_code, 422)

    def test_refresh_with_denied_permission_keeps_default(self):
        body = self.client.post("/v1/location/refresh").json()
        self.assertFalse(body["updated"])
        self.assertEqual(body["location"]["city"], "Mumbai")

    def test_refresh_with_granted_permission_uses_device(self):
        self._install(device=StaticDeviceLocationProvider(19.1197, 72.8464))
        body = self.client.post("/v1/location/refresh").json()
        self.assertTrue(body["updated"])
        self.assertEqual(body["location"]["latitude"], 19.1197)
        self.assertEqual(body["location"]["city"], "Mumbai")
        self.assertTrue(self.client.get("/v1/location").json()["permission_granted"])

    def test_refresh_with_grant_but_no_fix_reports_not_updated(self):
        self._install(device=StaticDeviceLocationProvider(permission_granted=True))
        body = self.client.post("/v1/location/refresh").json()
        self.assertFalse(body["updated"])
        self.assertEqual(body["location"]["city"], "Mumbai")
        self.assertTrue(self.client.get("/v1/location").json()["permission_granted"])

    def test_city_lookup(self):
        self.assertEqual(self.client.get("/v1/location/cities/delhi").json()["city"], "Delhi")
        self.assertEqual(self.client.get("/v1/location/cities/atlantis").status_code, 404)

    def test_radius_get_and_set(self):
        self.assertEqual(self.client.get("/v1/location/radius").json(), {"radius_km": 5.0})
        self.assertEqual(self.client.put("/v1/location/radius", json={"radius_km": 8}).json(), {"radius_km": 8.0})
        self.assertEqual(self.client.get("/v1/location/radius").json(), {"radius_km": 8.0})
        self.assertEqual(self.client.put("/v1/location/radius", json={"radius_km": 0}).status_code, 422)

    def test_distance(self):
        resp = self.client.post(
            "/v1/distance",
            json={
                "origin": {"latitude": 19.0760, "longitude": 72.8777},
                "destination": {"latitude": 19.0760, "longitude": 72.8777},
            },
        )
        self.assertEqual(resp.json(), {"distance_km": 0.0, "label": "0 m away"})

    # -- workers -----------------------------------------------------------

    def test_nearby_workers_sorted_with_labels(self):
        body = self.client.get("/v1/workers/nearby", params={"radius_km": 5, "skill": "plumber"}).json()
        self.assertEqual([w["worker"]["id"] for w in body["workers"]], ["near", "mid"])
        self.assertEqual(body["workers"][0]["label"], "1.1 km away")
        self.assertEqual(body["radius_km"], 5)

    def test_nearby_uses_saved_radius(self):
        self.client.put("/v1/location/radius", json={"radius_km": 2})
        body = self.client.get("/v1/workers/nearby").json()
        self.assertEqual([w["worker"]["id"] for w in body["workers"]], ["near", "sparky"])

    def test_search_ranks_eligible_workers(self):
        resp = self.client.post(
            "/v1/workers/search",
            json={"skill": "plumber", "location": {"latitude": 19.0760, "longitude": 72.8777}, "radius": 10},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["total"], 2)
        self.assertEqual([r["worker"]["id"] for r in body["results"]], ["near", "mid"])
        self.assertEqual([r["rank"] for r in body["results"]], [1, 2])

    def test_search_with_user_filters(self):
        resp = self.client.post(
            "/v1/workers/search",
            json={
                "skill": "plumber",
                "location": {"latitude": 19.0760, "longitude": 72.8777},
                "radius": 10,
                "online_only": True,
            },
        )
        body = resp.json()
        self.assertEqual([r["worker"]["id"] for r in body["results"]], ["near"])
        self.assertEqual(body["filters"], ["Online only"])

    def test_search_validation_errors(self):
        resp = self.client.post(
            "/v1/workers/search",
            json={"skill": "plumber", "location": {"latitude": 19.0, "longitude": 72.8}, "radius": 150},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], ["Radius cannot exceed 100km"])

    # -- notify ------------------------------------------------------------

    def test_notify_then_cooldown(self):
        first = self.client.post("/v1/workers/near/notify", json={"customer_id": "c1", "job_id": "j1"})
        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["success"])

        second = self.client.post("/v1/workers/near/notify", json={"customer_id": "c1"})
        self.assertEqual(second.status_code, 429)
        self.assertEqual(second.json()["detail"]["reason"], "cooldown")

        status_body = self.client.get("/v1/workers/near/notify").json()
        self.assertEqual(status_body["status"]["status"], "cooldown")
        self.assertGreater(status_body["status"]["cooldown_seconds_remaining"], 290)
        self.assertTrue(status_body["cooldown"]["is_on_cooldown"])

        history = self.client.get("/v1/customers/c1/notifications").json()
        self.assertEqual([(n["worker_id"], n["job_id"]) for n in history], [("near", "j1")])

    def test_notify_without_body(self):
        self.assertEqual(self.client.post("/v1/workers/mid/notify").status_code, 200)

    def test_notify_unknown_worker(self):
        self.assertEqual(self.client.post("/v1/workers/ghost/notify").status_code, 404)

    def test_failed_delivery_is_retryable(self):
        self._install(delivery=FailingDelivery())
        resp = self.client.post("/v1/workers/near/notify")
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["detail"]["reason"], "delivery_failed")
        status_body = self.client.get("/v1/workers/near/notify").json()
        self.assertEqual(status_body["status"], {"status": "ready", "cooldown_seconds_remaining": 0})

    def test_ready_worker_status(self):
        body = self.client.get("/v1/workers/near/notify").json()
        self.assertEqual(body["worker_id"], "near")
        self.assertEqual(body["status"]["status"], "ready")
        self.assertFalse(body["cooldown"]["is_on_cooldown"])

    # -- auth --------------------------------------------------------------

    def test_static_api_key(self):
        settings.api_key = "sekrit"
        self.assertEqual(self.client.get("/v1/location").status_code, 401)
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "wrong"}).status_code, 401)
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "sekrit"}).status_code, 200)

    def test_redis_key_set_accepts_members(self):
        api_mod._key_store = KeySet({"team-key"})
        self.assertEqual(self.client.get("/v1/location").status_code, 401)
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "team-key"}).status_code, 200)
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "other"}).status_code, 401)

    def test_redis_outage_falls_back_to_static_key(self):
        api_mod._key_store = KeySet(set(), down=True)
        settings.api_key = "sekrit"
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "team-key"}).status_code, 401)
        self.assertEqual(self.client.get("/v1/location", headers={"X-API-Key": "sekrit"}).status_code, 200)


if __name__ == "__main__":
    unittest.main()
