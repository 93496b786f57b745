def _teams_of(api, user):
    return api.client.get("/api/users/me", headers=api.auth(user)).json()["teams"]


def test_only_admins_manage_teams(api, client):
    admin = api.user(role="admin")
    regular = api.user()
    payload = {"name": "Platform Team", "leader": regular["id"], "members": []}

    assert client.post("/api/teams", json=payload, headers=api.auth(regular)).status_code == 403
    team = api.team(admin, leader=regular, members=[])

    assert client.put(f"/api/teams/{team['id']}", json={"name": "Renamed"}, headers=api.auth(regular)).status_code == 403
    assert client.delete(f"/api/teams/{team['id']}", headers=api.auth(regular)).status_code == 403
    assert client.get(f"/api/teams/{team['id']}", headers=api.auth(regular)).status_code == 200


def test_superadmin_counts_as_admin(api):
    superadmin = api.user(role="superadmin")
    team = api.team(superadmin, leader=superadmin, members=[])

    assert team["leader"]["id"] == superadmin["id"]


def test_create_team_populates_people_and_back_references(api):
    admin = api.user(role="admin")
    leader = api.user(first_name="Lea")
    member = api.user(first_name="Max")

    team = api.team(admin, leader=leader, members=[member, member])

    assert team["leader"] == {"id": leader["id"], "firstName": "Lea", "lastName": leader["lastName"], "role": "user"}
    assert [person["id"] for person in team["members"]] == [member["id"]]
    assert team["memberCount"] == 1
    assert team["status"] == "active"
    assert _teams_of(api, leader) == [team["id"]]
    assert _teams_of(api, member) == [team["id"]]


def test_unknown_users_are_rejected(api, client):
    admin = api.user(role="admin")

    response = client.post(
        "/api/teams",
        json={"name": "Ghost Team", "leader": admin["id"], "members": ["nobody"]},
        headers=api.auth(admin),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Some users do not exist"
    assert client.get("/api/teams", headers=api.auth(admin)).json()["totalItems"] == 0


def test_short_team_names_fail_validation(api, client):
    admin = api.user(role="admin")

    response = client.post(
        "/api/teams", json={"name": "ab", "leader": admin["id"]}, headers=api.auth(admin)
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["path"] == "name"


def test_member_changes_keep_back_references_in_sync(api, client):
    admin = api.user(role="admin")
    leader = api.user()
    stays = api.user()
    leaves = api.user()
    joins = api.user()
    team = api.team(admin, leader=leader, members=[leader, stays, leaves])

    response = client.put(
        f"/api/teams/{team['id']}",
        json={"members": [stays["id"], joins["id"]], "status": "inactive"},
        headers=api.auth(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert {person["id"] for person in body["members"]} == {stays["id"], joins["id"]}
    assert body["status"] == "inactive"
    assert _teams_of(api, joins) == [team["id"]]
    assert _teams_of(api, leaves) == []
    assert _teams_of(api, leader) == [team["id"]]
    assert _teams_of(api, stays) == [team["id"]]


def test_members_endpoint_includes_email(api, client):
    admin = api.user(role="admin")
    leader = api.user()
    member = api.user()
    team = api.team(admin, leader=leader, members=[member])

    body = client.get(f"/api/teams/{team['id']}/members", headers=api.auth(member)).json()

    assert body["leader"]["email"] == leader["email"]
    assert [person["email"] for person in body["members"]] == [member["email"]]


def test_delete_team_removes_back_references(api, client):
    admin = api.user(role="admin")
    leader = api.user()
    member = api.user()
    team = api.team(admin, leader=leader, members=[member])

    response = client.delete(f"/api/teams/{team['id']}", headers=api.auth(admin))

    assert response.json() == {"detail": "Team deleted successfully"}
    assert _teams_of(api, leader) == []
    assert _teams_of(api, member) == []
    assert client.get(f"/api/teams/{team['id']}", headers=api.auth(admin)).status_code == 404
    assert client.delete(f"/api/teams/{team['id']}", headers=api.auth(admin)).status_code == 404


def test_list_teams_filters(api, client):
    admin = api.user(role="admin")
    api.team(admin, leader=admin, members=[], name="Data Platform")
    archived = api.team(admin, leader=admin, members=[], name="Legacy Systems")
    client.put(f"/api/teams/{archived['id']}", json={"status": "archived"}, headers=api.auth(admin))

    headers = api.auth(admin)
    assert client.get("/api/teams", params={"search": "platform"}, headers=headers).json()["totalItems"] == 1
    only_archived = client.get("/api/teams", params={"status": "archived"}, headers=headers).json()
    assert [team["name"] for team in only_archived["items"]] == ["Legacy Systems"]


def test_duplicate_user_email_conflicts(client):
    payload = {"email": "Dup@Example.com", "firstName": "Dee", "lastName": "Up"}

    first = client.post("/api/users", json=payload)
    second = client.post("/api/users", json={**payload, "email": "dup@example.com"})

    assert first.status_code == 201
    assert first.json()["email"] == "dup@example.com"
    assert second.status_code == 409
    assert second.json() == {"detail": "User already exists"}
