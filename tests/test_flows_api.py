"""Tests for the flow store and /flows endpoints."""

import json

from qa_dashboard.services.flow_store import FlowStore


class TestFlowStore:
    """Tests for FlowStore."""

    def test_ids_are_unique(self, tmp_path):
        """Should hand out distinct ids for flows created back to back."""
        store = FlowStore(tmp_path / "flows.json")

        ids = {store.create({"name": str(i)})["id"] for i in range(20)}

        assert len(ids) == 20

    def test_snapshot_round_trip(self, tmp_path):
        """Should reload flows from the snapshot file."""
        path = tmp_path / "temp" / "flows.json"
        store = FlowStore(path)
        flow = store.create({"name": "Checkout", "steps": [{"action": "click"}]})

        reloaded = FlowStore(path)
        assert reloaded.load() == 1
        assert reloaded.get(flow["id"]) == flow

    def test_corrupt_snapshot(self, tmp_path):
        """Should start empty when the snapshot is unreadable."""
        path = tmp_path / "flows.json"
        path.write_text("{not json")

        store = FlowStore(path)

        assert store.load() == 0
        assert store.list() == []

    def test_snapshot_that_is_not_an_object(self, tmp_path):
        """Should start empty when the snapshot holds a JSON list."""
        path = tmp_path / "flows.json"
        path.write_text('[{"id": "1"}]')

        store = FlowStore(path)

        assert store.load() == 0
        assert store.create({"name": "Fresh"})["name"] == "Fresh"


class TestFlowsApi:
    """Tests for /flows."""

    def test_crud(self, client, project_root):
        """Should create, read, update and delete a flow."""
        created = client.post("/flows", json={"name": "Login", "steps": []})
        assert created.status_code == 201
        flow = created.json()
        flow_id = flow["id"]
        assert flow["name"] == "Login"

        assert client.get("/flows").json() == [flow]
        assert client.get(f"/flows/{flow_id}").json() == flow

        updated = client.put(f"/flows/{flow_id}", json={"name": "Login v2", "id": "ignored"})
        assert updated.status_code == 200
        assert updated.json() == {"name": "Login v2", "id": flow_id}

        snapshot = json.loads((project_root / "temp" / "flows.json").read_text())
        assert snapshot[flow_id]["name"] == "Login v2"

        deleted = client.delete(f"/flows/{flow_id}")
        assert deleted.status_code == 204
        assert client.get(f"/flows/{flow_id}").status_code == 404

    def test_unknown_flow(self, client):
        """Should answer 404 for unknown ids on every verb."""
        assert client.get("/flows/123").status_code == 404
        assert client.put("/flows/123", json={"name": "x"}).status_code == 404
        response = client.delete("/flows/123")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Flow not found"}

    def test_list_snapshot_does_not_break_routes(self, client, project_root):
        """Should serve /flows when the snapshot on disk is a JSON list."""
        snapshot = project_root / "temp" / "flows.json"
        snapshot.parent.mkdir(parents=True, exist_ok=True)
        snapshot.write_text("[]")

        assert client.get("/flows").json() == []
        assert client.post("/flows", json={"name": "After"}).status_code == 201
