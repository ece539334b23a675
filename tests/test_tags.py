"""Тесты для endpoints тегов"""

import uuid


class TestTagCRUD:
    def test_create_tag_with_default_color(self, authenticated_client):
        response = authenticated_client.post("/api/tags", json={"name": "health"})

        assert response.status_code == 201
        tag = response.json()["tag"]
        assert tag["name"] == "health"
        assert tag["color"] == "#6B7280"

    def test_create_tag_with_color(self, authenticated_client):
        response = authenticated_client.post("/api/tags", json={"name": "work", "color": "#FF0000"})

        assert response.status_code == 201
        assert response.json()["tag"]["color"] == "#FF0000"

    def test_create_tag_requires_auth(self, test_client):
        response = test_client.post("/api/tags", json={"name": "anon"})

        assert response.status_code == 401

    def test_create_duplicate_tag(self, authenticated_client, create_tag):
        create_tag("duplicate")

        response = authenticated_client.post("/api/tags", json={"name": "duplicate"})

        assert response.status_code == 409
        assert response.json()["detail"] == "Tag with this name already exists"

    def test_invalid_color(self, authenticated_client):
        response = authenticated_client.post("/api/tags", json={"name": "bad", "color": "red"})

        assert response.status_code == 400

    def test_list_tags_sorted_by_name_without_auth(self, test_client, create_tag):
        create_tag("zeta")
        create_tag("alpha")
        create_tag("mid")

        response = test_client.get("/api/tags")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()["tags"]] == ["alpha", "mid", "zeta"]

    def test_get_tag_with_usage_count(self, test_client, create_tag, create_habit):
        tag = create_tag()
        create_habit("One", tagIds=[tag["id"]])
        create_habit("Two", tagIds=[tag["id"]])

        response = test_client.get(f"/api/tags/{tag['id']}")

        assert response.status_code == 200
        assert response.json()["tag"]["usageCount"] == 2

    def test_get_nonexistent_tag(self, test_client):
        response = test_client.get(f"/api/tags/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Tag not found"

    def test_update_tag(self, authenticated_client, create_tag):
        tag = create_tag("before", color="#000000")

        response = authenticated_client.put(f"/api/tags/{tag['id']}", json={"name": "after"})

        assert response.status_code == 200
        updated = response.json()["tag"]
        assert updated["name"] == "after"
        assert updated["color"] == "#000000"

    def test_update_tag_to_existing_name(self, authenticated_client, create_tag):
        create_tag("taken")
        tag = create_tag("free")

        response = authenticated_client.put(f"/api/tags/{tag['id']}", json={"name": "taken"})

        assert response.status_code == 409

    def test_update_tag_keeping_own_name(self, authenticated_client, create_tag):
        tag = create_tag("same")

        response = authenticated_client.put(
            f"/api/tags/{tag['id']}", json={"name": "same", "color": "#123456"}
        )

        assert response.status_code == 200
        assert response.json()["tag"]["color"] == "#123456"

    def test_update_nonexistent_tag(self, authenticated_client):
        response = authenticated_client.put(f"/api/tags/{uuid.uuid4()}", json={"name": "x"})

        assert response.status_code == 404

    def test_delete_unused_tag(self, authenticated_client, create_tag):
        tag = create_tag()

        response = authenticated_client.delete(f"/api/tags/{tag['id']}")

        assert response.status_code == 200
        assert authenticated_client.get(f"/api/tags/{tag['id']}").status_code == 404

    def test_delete_tag_in_use(self, authenticated_client, create_tag, create_habit):
        tag = create_tag()
        create_habit(tagIds=[tag["id"]])

        response = authenticated_client.delete(f"/api/tags/{tag['id']}")

        assert response.status_code == 409
        assert "in use" in response.json()["detail"]
        assert authenticated_client.get(f"/api/tags/{tag['id']}").status_code == 200

    def test_delete_tag_after_unlinking(self, authenticated_client, create_tag, create_habit):
        tag = create_tag()
        habit = create_habit(tagIds=[tag["id"]])
        authenticated_client.delete(f"/api/habits/{habit['id']}/tags/{tag['id']}")

        response = authenticated_client.delete(f"/api/tags/{tag['id']}")

        assert response.status_code == 200


class TestPopularTags:
    def test_popular_tags_ordered_by_usage(self, test_client, create_tag, create_habit):
        rare = create_tag("rare")
        common = create_tag("common")
        unused = create_tag("unused")
        create_habit("A", tagIds=[common["id"], rare["id"]])
        create_habit("B", tagIds=[common["id"]])

        response = test_client.get("/api/tags/popular")

        assert response.status_code == 200
        tags = response.json()["tags"]
        assert [t["name"] for t in tags] == ["common", "rare", "unused"]
        assert [t["usageCount"] for t in tags] == [2, 1, 0]
        assert tags[2]["id"] == unused["id"]

    def test_popular_tags_ties_by_creation_order(self, test_client, create_tag):
        names = ["first", "second", "third"]
        for name in names:
            create_tag(name)

        response = test_client.get("/api/tags/popular")

        assert [t["name"] for t in response.json()["tags"]] == names

    def test_popular_tags_limited_to_ten(self, test_client, create_tag):
        for i in range(12):
            create_tag(f"tag-{i:02d}")

        response = test_client.get("/api/tags/popular")

        assert len(response.json()["tags"]) == 10


class TestTagHabits:
    def test_tag_habits_for_current_user(
        self, test_client, create_tag, create_habit, register_user
    ):
        tag = create_tag("shared")
        mine = create_habit("Mine", tagIds=[tag["id"]])
        test_client.headers.pop("Authorization", None)
        _, bob = register_user("bob")
        test_client.post(
            "/api/habits",
            json={"name": "Bob habit", "frequency": "daily", "tagIds": [tag["id"]]},
            headers=bob,
        )

        response = test_client.get(f"/api/tags/{tag['id']}/habits", headers=bob)

        assert response.status_code == 200
        body = response.json()
        assert body["tag"]["name"] == "shared"
        assert [h["name"] for h in body["habits"]] == ["Bob habit"]
        assert mine["id"] not in {h["id"] for h in body["habits"]}

    def test_tag_habits_requires_auth(self, test_client, create_tag):
        tag = create_tag()
        test_client.headers.pop("Authorization", None)

        response = test_client.get(f"/api/tags/{tag['id']}/habits")

        assert response.status_code == 401

    def test_tag_habits_unknown_tag(self, authenticated_client):
        response = authenticated_client.get(f"/api/tags/{uuid.uuid4()}/habits")

        assert response.status_code == 404
