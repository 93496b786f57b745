import sys
import time
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from teamhub.app import create_app
from teamhub.core.config import Settings
from teamhub.domain.jobs import RetryPolicy


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        queue_policies={"report-generation": RetryPolicy(max_attempts=2, backoff_seconds=0.0)},
        report_generation_delay=0.0,
    )


@pytest.fixture()
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


class Api:
    """Small seeding helper around the HTTP surface."""

    def __init__(self, client: TestClient) -> None:
        self.client = client
        self._counter = 0

    @staticmethod
    def auth(user: dict[str, Any]) -> dict[str, str]:
        return {"X-User-Id": user["id"]}

    def user(self, role: str = "user", first_name: str = "Ada") -> dict[str, Any]:
        self._counter += 1
        response = self.client.post(
            "/api/users",
            json={
                "email": f"user{self._counter}@example.com",
                "firstName": first_name,
                "lastName": f"Tester{self._counter}",
                "role": role,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    def team(self, admin: dict, leader: dict, members: list[dict], name: str = "Platform Team") -> dict[str, Any]:
        response = self.client.post(
            "/api/teams",
            json={"name": name, "leader": leader["id"], "members": [member["id"] for member in members]},
            headers=self.auth(admin),
        )
        assert response.status_code == 201, response.text
        return response.json()

    def report(self, owner: dict, team: dict, **overrides: Any) -> dict[str, Any]:
        payload = {"title": "Quarterly numbers", "type": "financial", "team": team["id"], "assignedTo": []}
        payload.update(overrides)
        response = self.client.post("/api/reports", json=payload, headers=self.auth(owner))
        assert response.status_code == 201, response.text
        return response.json()

    def wait_for_report(self, user: dict, report_id: str, status: str = "completed") -> dict[str, Any]:
        body: dict[str, Any] = {}
        for _ in range(300):
            body = self.client.get(f"/api/reports/{report_id}", headers=self.auth(user)).json()
            if body.get("status") == status:
                return body
            time.sleep(0.01)
        raise AssertionError(f"report {report_id} never reached {status}: {body}")


@pytest.fixture()
def api(client) -> Api:
    return Api(client)
