# tests/test_api.py
"""
Node control surface tests - FastAPI routes via TestClient
"""

import pytest
from fastapi.testclient import TestClient

from benor.api import create_node_app


@pytest.fixture
def client_for():
    def _client(node):
        return TestClient(create_node_app(node))
    return _client


class TestStatusRoute:

    def test_live_node(self, make_node, client_for):
        response = client_for(make_node()).get("/status")

        assert response.status_code == 200
        assert response.text == "live"

    def test_faulty_node(self, make_node, client_for):
        response = client_for(make_node(is_faulty=True)).get("/status")

        assert response.status_code == 500
        assert response.text == "faulty"


class TestMessageRoute:

    def test_message_is_recorded(self, make_node, client_for):
        node = make_node(initial_value=0)

        response = client_for(node).post("/message", json={"round": 0, "value": 1, "decision": False})

        assert response.status_code == 200
        assert response.text == "received"
        assert len(node.log.messages_for_round(0)) == 1

    def test_decision_is_adopted(self, make_node, client_for):
        node = make_node(initial_value=0)
        client = client_for(node)

        client.post("/message", json={"round": 5, "value": 1, "decision": True})

        assert client.get("/getState").json() == {"killed": False, "x": 1, "decided": True, "k": 0}

    @pytest.mark.parametrize("payload", [
        {"round": "abc", "value": 1},
        {"round": 0, "value": 3},
        {"round": 0, "decision": True},
        {"round": 0, "value": 1, "extra": True},
        {"round": 0, "value": True, "decision": True},
        {"round": 0, "value": 1, "decision": 1},
        {"round": True, "value": 1},
    ])
    def test_malformed_message_rejected(self, make_node, client_for, payload):
        node = make_node()

        response = client_for(node).post("/message", json=payload)

        assert response.status_code == 422
        assert len(node.log) == 0
        assert node.decided is False


class TestControlRoutes:

    def test_start_single_node_decides(self, make_node, client_for):
        node = make_node(total_nodes=1, max_faults=0, initial_value=1)

        response = client_for(node).get("/start")

        assert response.status_code == 200
        assert response.text == "decided 1"

    def test_start_faulty_node_stops(self, make_node, client_for):
        response = client_for(make_node(is_faulty=True)).get("/start")

        assert response.text == "stopped"

    def test_start_after_stop(self, make_node, client_for):
        client = client_for(make_node())

        assert client.get("/stop").text == "success"
        assert client.get("/start").text == "stopped"
        assert client.get("/getState").json()["killed"] is True

    def test_get_state_faulty(self, make_node, client_for):
        response = client_for(make_node(is_faulty=True)).get("/getState")

        assert response.json() == {"killed": False, "x": None, "decided": None, "k": None}

    def test_metrics(self, make_node, client_for):
        node = make_node()
        client = client_for(node)
        client.post("/message", json={"round": 0, "value": 1})

        metrics = client.get("/metrics").json()

        assert metrics["messages_logged"] == 1
        assert metrics["failed_sends"] == 0
        assert metrics["conflicting_decisions"] == 0
        assert metrics["phase"] == "init"
