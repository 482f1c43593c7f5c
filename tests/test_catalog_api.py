"""Persona, IBO hierarchy and card endpoints."""


class TestPersonas:
    def test_create_and_get(self, client, persona):
        resp = client.get(f"/api/personas/{persona['id']}")

        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Field Sales Rep"
        assert resp.json()["status"] == "ok"

    def test_blank_field_rejected(self, client):
        resp = client.post(
            "/api/personas",
            json={
                "name": "X",
                "description": "d",
                "context": "",
                "experience": "e",
                "motivations": "m",
                "constraints": " ",
            },
        )

        assert resp.status_code == 400
        assert "context" in resp.json()["detail"]
        assert "constraints" in resp.json()["detail"]

    def test_update_and_delete(self, client, persona):
        resp = client.put(f"/api/personas/{persona['id']}", json={"experience": "10 years"})
        assert resp.json()["data"]["experience"] == "10 years"
        assert resp.json()["data"]["name"] == "Field Sales Rep"

        assert client.delete(f"/api/personas/{persona['id']}").status_code == 200
        assert client.get(f"/api/personas/{persona['id']}").status_code == 404


class TestIBOHierarchy:
    def _ibo(self, client) -> dict:
        resp = client.post("/api/ibos", json={"title": "Grow renewals", "topic": "Account management"})
        assert resp.status_code == 201
        return resp.json()["data"]

    def test_title_required(self, client):
        assert client.post("/api/ibos", json={"title": ""}).status_code == 400

    def test_tree(self, client):
        ibo = self._ibo(client)
        pm2 = client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": "NPS +5", "sort_order": 2}).json()["data"]
        pm1 = client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": "Renewals +10%", "sort_order": 1}).json()["data"]
        client.post(f"/api/metrics/{pm1['id']}/behaviors", json={"text": "Books QBRs"})

        tree = client.get(f"/api/ibos/{ibo['id']}/tree").json()["data"]

        assert [m["id"] for m in tree["performance_metrics"]] == [pm1["id"], pm2["id"]]
        assert [b["text"] for b in tree["performance_metrics"][0]["observable_behaviors"]] == ["Books QBRs"]
        assert tree["performance_metrics"][1]["observable_behaviors"] == []

    def test_metric_requires_text(self, client):
        ibo = self._ibo(client)

        assert client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": " "}).status_code == 400

    def test_metric_for_missing_ibo(self, client):
        assert client.post("/api/ibos/nope/metrics", json={"text": "x"}).status_code == 404

    def test_update_metric_and_behavior(self, client):
        ibo = self._ibo(client)
        pm = client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": "old"}).json()["data"]
        ob = client.post(f"/api/metrics/{pm['id']}/behaviors", json={"text": "old"}).json()["data"]

        assert client.put(f"/api/metrics/{pm['id']}", json={"text": "new"}).json()["data"]["text"] == "new"
        assert client.put(f"/api/behaviors/{ob['id']}", json={"sort_order": 3}).json()["data"]["sort_order"] == 3

    def test_delete_metric_removes_behaviors(self, client):
        ibo = self._ibo(client)
        pm = client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": "m"}).json()["data"]
        client.post(f"/api/metrics/{pm['id']}/behaviors", json={"text": "b"})

        assert client.delete(f"/api/metrics/{pm['id']}").status_code == 200
        assert client.get(f"/api/metrics/{pm['id']}/behaviors").status_code == 404
        assert client.get(f"/api/ibos/{ibo['id']}/metrics").json()["data"] == []

    def test_delete_ibo(self, client):
        ibo = self._ibo(client)
        client.post(f"/api/ibos/{ibo['id']}/metrics", json={"text": "m"})

        assert client.delete(f"/api/ibos/{ibo['id']}").status_code == 200
        assert client.get("/api/ibos").json()["data"] == []


class TestCards:
    PAYLOAD = {
        "title": "Discovery questions",
        "ibo_id": "ibo-1",
        "learning_objective_id": "lo-1",
        "target_duration": 60,
        "activities": [
            {"title": "Warm-up story", "type": "connection", "duration": 10},
            {"title": "SPIN model", "type": "concept", "duration": 20},
        ],
    }

    def test_create_with_activities(self, client):
        resp = client.post("/api/cards", json=self.PAYLOAD)

        assert resp.status_code == 201
        activities = resp.json()["data"]["activities"]
        assert [(a["title"], a["order_index"]) for a in activities] == [("Warm-up story", 0), ("SPIN model", 1)]

    def test_invalid_activity_type(self, client):
        payload = dict(self.PAYLOAD, activities=[{"title": "x", "type": "lecture"}])

        assert client.post("/api/cards", json=payload).status_code == 422

    def test_update_replaces_activities(self, client):
        card = client.post("/api/cards", json=self.PAYLOAD).json()["data"]

        resp = client.put(
            f"/api/cards/{card['id']}",
            json={"target_duration": 30, "activities": [{"title": "Role play", "type": "concrete_practice"}]},
        )

        data = resp.json()["data"]
        assert data["target_duration"] == 30
        assert [a["title"] for a in data["activities"]] == ["Role play"]

    def test_update_keeps_activities_when_omitted(self, client):
        card = client.post("/api/cards", json=self.PAYLOAD).json()["data"]

        data = client.put(f"/api/cards/{card['id']}", json={"title": "Renamed"}).json()["data"]
        assert data["title"] == "Renamed"
        assert len(data["activities"]) == 2

    def test_delete(self, client):
        card = client.post("/api/cards", json=self.PAYLOAD).json()["data"]

        assert client.delete(f"/api/cards/{card['id']}").status_code == 200
        assert client.get(f"/api/cards/{card['id']}").status_code == 404


def test_health(client):
    assert client.get("/api/health").json()["database"] == "connected"
