"""
Tests for owner/admin management endpoints: trainer roster, owners,
contact messages and owner stats.
"""
from gymhub.core.database import contact_messages
from gymhub.features.trainers.service import add_user_trainer
from gymhub.models.user import Role


def test_trainer_roster_hides_email(client, make_user, auth_headers):
    owner = make_user(role=Role.OWNER)
    headers = auth_headers(owner, Role.OWNER)

    created = client.post(
        "/api/trainers",
        json={
            "name": "Maya Iyer",
            "qualification": "NSCA-CSCS",
            "imageUrl": "https://cdn.example.com/maya.png",
            "email": "Maya@Gym.example.com",
            "password": "coach-pass-1",
        },
        headers=headers,
    )
    assert created.status_code == 201
    trainer = created.json()["trainer"]
    assert trainer["email"] == "maya@gym.example.com"

    public = client.get("/api/trainers").json()["trainers"]
    assert public[0]["name"] == "Maya Iyer"
    assert "email" not in public[0]
    assert "email" not in client.get(f"/api/trainers/{trainer['id']}").json()["trainer"]


def test_trainer_email_must_be_unique(client, make_user, make_trainer, auth_headers):
    make_trainer(email="maya@gym.example.com")
    owner = make_user(role=Role.OWNER)
    resp = client.post(
        "/api/trainers",
        json={"name": "Maya", "qualification": "CSCS", "email": "maya@gym.example.com"},
        headers=auth_headers(owner, Role.OWNER),
    )
    assert resp.status_code == 409


def test_trainer_update_and_delete(client, make_user, make_trainer, auth_headers):
    trainer_id = make_trainer(name="Old Name")
    headers = auth_headers(make_user(role=Role.OWNER), Role.OWNER)

    resp = client.put(f"/api/trainers/{trainer_id}", json={"name": "New Name"}, headers=headers)
    assert resp.json()["trainer"]["name"] == "New Name"
    assert resp.json()["trainer"]["qualification"] == "Certified Strength Coach"

    assert client.delete(f"/api/trainers/{trainer_id}", headers=headers).status_code == 200
    assert client.get(f"/api/trainers/{trainer_id}").status_code == 404


def test_member_trainer_endpoints(client, active_member, make_trainer, auth_headers):
    user_id = active_member(trainers_limit=1)
    headers = auth_headers(user_id)
    first, second = make_trainer(), make_trainer()

    assert client.post("/api/users/trainers/add", json={"trainerId": first}, headers=headers).json()["message"] == "Trainer added"
    again = client.post("/api/users/trainers/add", json={"trainerId": first}, headers=headers)
    assert again.json()["message"] == "Trainer already added"
    over = client.post("/api/users/trainers/add", json={"trainerId": second}, headers=headers)
    assert over.status_code == 409

    assert [t["id"] for t in client.get("/api/users/trainers", headers=headers).json()["trainers"]] == [first]
    assert client.post("/api/users/trainers/remove", json={"trainerId": first}, headers=headers).status_code == 200

    picked = client.post("/api/users/select-trainer", json={"trainerId": second}, headers=headers)
    assert picked.json()["message"] == "Trainer selected successfully"


def test_admin_manages_owners(client, make_user, auth_headers):
    admin = make_user(role=Role.ADMIN, name="Root", email="root@gym.example.com")
    headers = auth_headers(admin, Role.ADMIN)

    created = client.post(
        "/api/admin/owners",
        json={"name": "Owner One", "email": "Owner@Gym.example.com", "password": "owner-pass-1"},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["owner"]["email"] == "owner@gym.example.com"

    owners = client.get("/api/admin/owners", headers=headers).json()["owners"]
    assert [o["email"] for o in owners] == ["owner@gym.example.com"]

    login = client.post("/api/auth/login", json={"email": "owner@gym.example.com", "password": "owner-pass-1"})
    assert login.json()["user"]["role"] == "OWNER"


def test_admin_profile(client, make_user, auth_headers):
    admin = make_user(role=Role.ADMIN, name="Root", email="root@gym.example.com")
    make_user(email="taken@gym.example.com")
    headers = auth_headers(admin, Role.ADMIN)

    assert client.get("/api/admin/profile", headers=headers).json()["role"] == "ADMIN"
    assert client.put("/api/admin/profile", json={"email": "taken@gym.example.com"}, headers=headers).status_code == 409

    resp = client.put("/api/admin/profile", json={"name": "Super Root", "email": " "}, headers=headers)
    assert resp.json()["admin"] == {"id": admin, "name": "Super Root", "email": "root@gym.example.com"}


def test_owner_only_admin_routes(client, make_user, auth_headers):
    owner = make_user(role=Role.OWNER)
    assert client.get("/api/admin/owners", headers=auth_headers(owner, Role.OWNER)).status_code == 403


def test_contact_form(client, make_user, auth_headers):
    resp = client.post("/api/contact", json={"name": "Visitor", "email": "v@example.com", "message": "Open on Sunday?"})
    assert resp.status_code == 201

    missing = client.post("/api/contact", json={"name": "Visitor", "message": " "})
    assert missing.status_code == 400

    owner = make_user(role=Role.OWNER)
    messages = client.get("/api/contact", headers=auth_headers(owner, Role.OWNER)).json()["messages"]
    assert [m["message"] for m in messages] == ["Open on Sunday?"]


def test_owner_stats(client, db, make_user, active_member, make_trainer, auth_headers, now):
    owner = make_user(role=Role.OWNER)
    trainer_id = make_trainer()
    make_trainer()
    linked = active_member()
    make_user(trainer_id=trainer_id)
    make_user()
    add_user_trainer(db, linked, trainer_id, now)

    stats = client.get("/api/dashboard/owner/stats", headers=auth_headers(owner, Role.OWNER)).json()

    assert stats == {"totalUsers": 3, "totalTrainers": 2, "assignedUsers": 2}


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json() == {"status": "ok"}


def test_readyz_reports_missing_tables(client, engine):
    contact_messages.drop(engine)

    resp = client.get("/readyz")

    assert resp.status_code == 503
    assert resp.json()["detail"] == "missing tables: contact_messages"
