def _join(websocket, user):
    websocket.send_json({"event": "join", "data": user["id"]})
    frame = websocket.receive_json()
    assert frame["event"] == "user:connected"
    assert frame["data"]["userId"] == user["id"]
    return frame["data"]["connectionId"]


def test_join_registers_the_connection(api, client):
    user = api.user()

    with client.websocket_connect("/api/ws") as websocket:
        connection_id = _join(websocket, user)
        listing = client.get("/api/realtime/connections", headers=api.auth(user)).json()

    assert listing["items"] == [{"connectionId": connection_id, "userId": user["id"]}]


def test_client_status_updates_reach_other_clients_only(api, client):
    alice = api.user(first_name="Alice")
    bob = api.user(first_name="Bob")

    with client.websocket_connect("/api/ws") as first, client.websocket_connect("/api/ws") as second:
        _join(first, alice)
        _join(second, bob)
        first.send_json({"event": "report:status", "data": {"reportId": "r1", "status": "in_progress", "progress": 5}})

        frame = second.receive_json()
        assert frame == {"event": "report:status", "data": {"reportId": "r1", "status": "in_progress", "progress": 5}}

        # the sender gets nothing back, so its next frame answers this bad one
        first.send_text("{not json")
        assert first.receive_json()["event"] == "error"


def test_binary_frames_get_an_error_and_keep_the_socket_open(api, client):
    user = api.user()

    with client.websocket_connect("/api/ws") as websocket:
        _join(websocket, user)
        websocket.send_bytes(b"\xff\xfe")

        assert websocket.receive_json() == {"event": "error", "data": {"message": "frames must be JSON text"}}
        _join(websocket, user)


def test_report_lifecycle_is_streamed(api, client):
    admin = api.user(role="admin")
    owner = api.user()
    member = api.user()
    team = api.team(admin, leader=owner, members=[owner, member])

    with client.websocket_connect("/api/ws") as websocket:
        _join(websocket, member)
        report = api.report(owner, team, assignedTo=[member["id"]])

        frames = []
        while True:
            frame = websocket.receive_json()
            frames.append(frame)
            if frame["event"] == "report:status" and frame["data"]["status"] == "completed":
                break

    events = [frame["event"] for frame in frames]
    assert "report:created" in events
    notifications = [frame["data"] for frame in frames if frame["event"] == "notification:received"]
    assert notifications[0]["userId"] == member["id"]
    assert notifications[0]["message"] == "New report assigned: Quarterly numbers"
    statuses = [frame["data"] for frame in frames if frame["event"] == "report:status"]
    assert all(status["reportId"] == report["id"] for status in statuses)
    assert statuses[-1]["progress"] == 100
    assert [status["status"] for status in statuses].count("completed") == 1


def test_health_reports_queue_and_connections(client):
    body = client.get("/api/health").json()

    assert body["status"] == "ok"
    assert body["queue"]["running"] is True
    assert body["connections"] == 0
    assert client.get("/").json()["health"] == "/api/health"


def _next(websocket, event):
    """Skip frames until ``event`` arrives; generation status frames interleave freely."""
    while True:
        frame = websocket.receive_json()
        if frame["event"] == event:
            return frame["data"]


def test_entity_changes_are_broadcast(api, client):
    admin = api.user(role="admin")
    owner = api.user()
    viewer = api.user()
    headers = api.auth(admin)

    with client.websocket_connect("/api/ws") as websocket:
        _join(websocket, admin)

        team = api.team(admin, leader=owner, members=[owner, viewer], name="Events Team")
        assert _next(websocket, "team:created") == {"teamId": team["id"], "name": "Events Team", "leader": owner["id"]}

        client.put(f"/api/teams/{team['id']}", json={"name": "Events Team 2"}, headers=headers)
        assert _next(websocket, "team:updated") == {"teamId": team["id"], "changes": {"name": "Events Team 2"}}

        report = api.report(owner, team)
        assert _next(websocket, "report:created")["reportId"] == report["id"]
        client.delete(f"/api/reports/{report['id']}", headers=api.auth(owner))
        assert _next(websocket, "report:deleted") == {"reportId": report["id"]}

        dashboard = client.post(
            "/api/dashboards",
            json={"name": "Board", "team": team["id"], "sharedWith": [viewer["id"]]},
            headers=api.auth(owner),
        ).json()
        shared = _next(websocket, "notification:received")
        assert (shared["userId"], shared["message"]) == (viewer["id"], "New dashboard shared: Board")

        client.put(f"/api/dashboards/{dashboard['id']}", json={"name": "Board2"}, headers=api.auth(owner))
        assert _next(websocket, "dashboard:updated") == {"dashboardId": dashboard["id"], "changes": {"name": "Board2"}}

        client.delete(f"/api/dashboards/{dashboard['id']}", headers=api.auth(owner))
        assert _next(websocket, "dashboard:deleted") == {"dashboardId": dashboard["id"]}

        client.delete(f"/api/teams/{team['id']}", headers=headers)
        assert _next(websocket, "team:deleted") == {"teamId": team["id"]}
