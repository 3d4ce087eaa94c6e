import time
import unittest

from app.kv_store import InMemoryKeyValueStore, RedisKeyValueStore


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expires = {}

    def set(self, key, value):
        self.store[key] = value
        self.expires.pop(key, None)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expires[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)
        self.expires.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store.keys()) if k.startswith(prefix)]


class BrokenRedis(FakeRedis):
    def get(self, key):
        raise ConnectionError("redis down")


class TestInMemoryKeyValueStore(unittest.TestCase):
    def test_set_get_delete(self):
        store = InMemoryKeyValueStore()
        self.assertIsNone(store.get("missing"))
        store.set("user_location", "{}")
        self.assertEqual(store.get("user_location"), "{}")
        store.delete("user_location")
        self.assertIsNone(store.get("user_location"))

    def test_ttl_expiry(self):
        store = InMemoryKeyValueStore()
        store.set("short", "v", ttl_seconds=1)
        store.set("long", "v")
        self.assertEqual(store.get("short"), "v")
        time.sleep(1.1)
        self.assertIsNone(store.get("short"))
        self.assertEqual(store.get("long"), "v")

    def test_clear(self):
        store = InMemoryKeyValueStore()
        store.set("a", "1")
        store.set("b", "2")
        store.clear()
        self.assertIsNone(store.get("a"))
        self.assertIsNone(store.get("b"))


class TestRedisKeyValueStore(unittest.TestCase):
    def test_round_trip_with_prefix(self):
        client = FakeRedis()
        store = RedisKeyValueStore(client, prefix="connecto:")

        store.set("nearby_radius", "5.0")

        self.assertIn("connecto:nearby_radius", client.store)
        self.assertNotIn("connecto:nearby_radius", client.expires)
        self.assertEqual(store.get("nearby_radius"), "5.0")

    def test_ttl_uses_setex(self):
        client = FakeRedis()
        store = RedisKeyValueStore(client, prefix="connecto:")
        store.set("k", "v", ttl_seconds=30)
        self.assertEqual(client.expires["connecto:k"], 30)

    def test_delete_and_clear_only_own_prefix(self):
        client = FakeRedis()
        store = RedisKeyValueStore(client, prefix="connecto:")
        client.store["other:key"] = b"keep"
        store.set("a", "1")
        store.set("b", "2")

        store.delete("a")
        self.assertIsNone(store.get("a"))

        store.clear()
        self.assertEqual(client.store, {"other:key": b"keep"})

    def test_undecodable_value_reads_as_none(self):
        client = FakeRedis()
        client.store["connecto:bad"] = b"\xff\xfe"
        store = RedisKeyValueStore(client, prefix="connecto:")
        self.assertIsNone(store.get("bad"))

    def test_transport_error_reads_as_none(self):
        store = RedisKeyValueStore(BrokenRedis(), prefix="connecto:")
        self.assertIsNone(store.get("anything"))


if __name__ == "__main__":
    unittest.main()
