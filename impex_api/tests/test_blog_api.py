import itertools
import unittest
from datetime import datetime, timedelta, timezone

from bson import ObjectId
from fastapi.testclient import TestClient

from impex_api.app import create_app
from impex_api.config import Settings
from impex_api.db import InMemoryBlogStore
from impex_api.dependencies import get_blog_store


def _ticking_clock():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


def _blog(**overrides):
    payload = {
        "title": "A",
        "description": "B",
        "category": "C",
        "imageUrl": "http://x/1.png",
        "status": "draft",
    }
    payload.update(overrides)
    return payload


class BlogApiTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryBlogStore(clock=_ticking_clock())
        app = create_app(Settings(use_in_memory_backends=True))
        app.dependency_overrides[get_blog_store] = lambda: self.store
        self.client = TestClient(app)

    def _create(self, **overrides):
        response = self.client.post("/api/blog/new", json=_blog(**overrides))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_returns_generated_id(self):
        response = self.client.post("/api/blog/new", json=_blog())
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["data"]["status"], "draft")
        self.assertTrue(ObjectId.is_valid(payload["data"]["id"]))

    def test_get_returns_created_record(self):
        created = self._create(title="  Trade data  ")
        response = self.client.get(f"/api/blog/{created['id']}")
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data, created)
        self.assertEqual(data["title"], "Trade data")
        self.assertEqual(data["description"], "B")
        self.assertEqual(data["category"], "C")
        self.assertEqual(data["imageUrl"], "http://x/1.png")
        self.assertIn("createdAt", data)
        self.assertIn("updatedAt", data)

    def test_create_missing_fields(self):
        payload = _blog()
        del payload["imageUrl"]
        response = self.client.post("/api/blog/new", json=payload)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {
                "success": False,
                "error": "Please provide title, description, category, status, and imageUrl",
            },
        )
        self.assertEqual(self.store.docs, {})

    def test_create_requires_explicit_status(self):
        payload = _blog()
        del payload["status"]
        response = self.client.post("/api/blog/new", json=payload)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.docs, {})

    def test_create_invalid_status_is_not_persisted(self):
        for status in ("archived", "Published", "DRAFT", " draft"):
            response = self.client.post("/api/blog/new", json=_blog(status=status))
            self.assertEqual(response.status_code, 400)
            self.assertEqual(
                response.json()["error"], 'Status must be either "published" or "draft"'
            )
        self.assertEqual(self.store.docs, {})

    def test_create_schema_validation_messages(self):
        response = self.client.post(
            "/api/blog/new", json=_blog(title="x" * 101, category="   ")
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {
                "success": False,
                "error": [
                    "Title cannot be more than 100 characters",
                    "Blog category is required",
                ],
            },
        )
        self.assertEqual(self.store.docs, {})

    def test_create_casts_numbers_to_strings(self):
        response = self.client.post("/api/blog/new", json=_blog(title=123, category=7.5))
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["title"], "123")
        self.assertEqual(data["category"], "7.5")

    def test_update_casts_numbers_to_strings(self):
        created = self._create()
        response = self.client.put(f"/api/blog/{created['id']}", json={"title": 2024})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["title"], "2024")

    def test_create_with_uncastable_value_is_validation_error(self):
        response = self.client.post("/api/blog/new", json=_blog(title=["a"]))
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(len(body["error"]), 1)
        self.assertTrue(body["error"][0].startswith("Cast to string failed for value"))
        self.assertTrue(body["error"][0].endswith('at path "title"'))
        self.assertEqual(self.store.docs, {})

    def test_create_rejects_non_json_body(self):
        response = self.client.post(
            "/api/blog/new",
            content="not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_list_orders_by_creation_desc_and_filters(self):
        first = self._create(title="first", category="news")
        second = self._create(title="second", status="published", category="news")
        third = self._create(title="third", category="guides")

        response = self.client.get("/api/blogs")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["count"], 3)
        self.assertEqual(
            [b["id"] for b in payload["data"]], [third["id"], second["id"], first["id"]]
        )

        drafts = self.client.get("/api/blogs", params={"status": "draft"}).json()
        self.assertEqual([b["id"] for b in drafts["data"]], [third["id"], first["id"]])
        self.assertTrue(all(b["status"] == "draft" for b in drafts["data"]))

        news_drafts = self.client.get(
            "/api/blogs", params={"status": "draft", "category": "news"}
        ).json()
        self.assertEqual(news_drafts["count"], 1)
        self.assertEqual(news_drafts["data"][0]["id"], first["id"])

    def test_list_empty(self):
        response = self.client.get("/api/blogs", params={"category": "none"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "count": 0, "data": []})

    def test_malformed_id_is_invalid_identifier(self):
        for method in ("get", "put", "delete"):
            kwargs = {"json": {"status": "published"}} if method == "put" else {}
            response = getattr(self.client, method)("/api/blog/not-an-id", **kwargs)
            self.assertEqual(response.status_code, 400, method)
            self.assertEqual(response.json()["error"], "Invalid blog ID format")

    def test_unknown_id_is_not_found(self):
        missing = str(ObjectId())
        for method in ("get", "put", "delete"):
            kwargs = {"json": {"status": "published"}} if method == "put" else {}
            response = getattr(self.client, method)(f"/api/blog/{missing}", **kwargs)
            self.assertEqual(response.status_code, 404, method)
            self.assertEqual(
                response.json(), {"success": False, "error": "Blog not found"}
            )

    def test_update_status_only(self):
        created = self._create()
        response = self.client.put(
            f"/api/blog/{created['id']}", json={"status": "published"}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["status"], "published")
        # ISO-8601 strings in one timezone order chronologically.
        self.assertGreater(data["updatedAt"], created["updatedAt"])
        self.assertEqual(data["createdAt"], created["createdAt"])
        for field in ("id", "title", "description", "category", "imageUrl"):
            self.assertEqual(data[field], created[field])

    def test_update_revalidates_touched_fields(self):
        created = self._create()
        response = self.client.put(
            f"/api/blog/{created['id']}", json={"status": "archived", "title": ""}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["error"],
            [
                "Blog title is required",
                "`archived` is not a valid enum value for path `status`.",
            ],
        )
        unchanged = self.client.get(f"/api/blog/{created['id']}").json()["data"]
        self.assertEqual(unchanged, created)

    def test_update_ignores_immutable_fields(self):
        created = self._create()
        response = self.client.put(
            f"/api/blog/{created['id']}",
            json={"id": str(ObjectId()), "createdAt": "2000-01-01T00:00:00Z"},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["id"], created["id"])
        self.assertEqual(data["createdAt"], created["createdAt"])

    def test_delete_then_delete_again(self):
        created = self._create()
        response = self.client.delete(f"/api/blog/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "data": {}})

        again = self.client.delete(f"/api/blog/{created['id']}")
        self.assertEqual(again.status_code, 404)
        self.assertEqual(again.json()["error"], "Blog not found")

        self.assertEqual(self.client.get(f"/api/blog/{created['id']}").status_code, 404)


if __name__ == "__main__":
    unittest.main()
