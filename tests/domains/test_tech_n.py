# tests/domains/test_tech_n.py

"""
Integration tests of the 'tech' domain: technician profiles and the
self-service availability route.
"""

from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.roles import UserRole
from gmao.domains.tech import models as tech_models
from gmao.domains.usr import models as usr_models
from gmao.domains.wo import models as wo_models


async def test_create_technicien_creates_user(receptionist_client: AsyncClient, client: AsyncClient):
    """(success) staff creates a technician and its account in one call"""
    payload = {
        "email": "julie@example.com",
        "nom": "Bernard",
        "prenom": "Julie",
        "password": "juliepass123",
        "specialite": "Froid",
        "taux_horaire": "52.50",
    }
    response = await receptionist_client.post("/api/v1/tech/techniciens", json=payload)
    assert response.status_code == 201
    body = response.json()
    assert body["statut"] == tech_models.TechnicienStatut.DISPONIBLE.value
    assert body["user"]["email"] == "julie@example.com"

    # Given the new account, When it logs in, Then it holds the technician role
    login = await client.post(
        "/api/v1/usr/auth/token", data={"username": "julie@example.com", "password": "juliepass123"}
    )
    assert login.status_code == 200
    client.headers["Authorization"] = f"Bearer {login.json()['access_token']}"
    me = await client.get("/api/v1/usr/users/me")
    assert me.json()["roles"] == [UserRole.TECHNICIEN.value]


async def test_create_technicien_duplicate_email(
    receptionist_client: AsyncClient, test_user: usr_models.User, db_session: AsyncSession
):
    """(failure) the whole creation is rolled back when the e-mail is taken"""
    payload = {"email": test_user.email, "nom": "X", "prenom": "Y", "password": "password123"}
    response = await receptionist_client.post("/api/v1/tech/techniciens", json=payload)
    assert response.status_code == 409


async def test_create_technicien_requires_staff(technicien_client: AsyncClient):
    """(failure) a technician cannot create technicians"""
    payload = {"email": "t2@example.com", "nom": "X", "prenom": "Y", "password": "password123"}
    response = await technicien_client.post("/api/v1/tech/techniciens", json=payload)
    assert response.status_code == 403


async def test_technicien_sets_own_status(
    technicien_client: AsyncClient, test_technicien: tech_models.Technicien
):
    """(success) a technician marks themself absent"""
    response = await technicien_client.patch(
        f"/api/v1/tech/techniciens/{test_technicien.id}/status",
        json={"statut": tech_models.TechnicienStatut.ABSENT.value},
    )
    assert response.status_code == 200
    assert response.json()["statut"] == tech_models.TechnicienStatut.ABSENT.value


async def test_other_user_cannot_set_technicien_status(
    authorized_client: AsyncClient, test_technicien: tech_models.Technicien
):
    """(failure) a user who is neither the technician nor staff gets 403"""
    response = await authorized_client.patch(
        f"/api/v1/tech/techniciens/{test_technicien.id}/status",
        json={"statut": tech_models.TechnicienStatut.ABSENT.value},
    )
    assert response.status_code == 403


async def test_staff_sets_technicien_status(
    receptionist_client: AsyncClient, test_technicien: tech_models.Technicien
):
    """(success) staff may change any technician's status"""
    response = await receptionist_client.patch(
        f"/api/v1/tech/techniciens/{test_technicien.id}/status",
        json={"statut": tech_models.TechnicienStatut.EN_INTERVENTION.value},
    )
    assert response.status_code == 200


async def test_read_available_techniciens(
    authorized_client: AsyncClient, db_session: AsyncSession,
    test_technicien: tech_models.Technicien, user_factory,
):
    """(success) only 'Disponible' technicians are listed"""
    busy_user = await user_factory("busy@example.com", "busypass123", roles=[UserRole.TECHNICIEN])
    db_session.add(tech_models.Technicien(
        user_id=busy_user.id, statut=tech_models.TechnicienStatut.EN_INTERVENTION.value
    ))
    await db_session.commit()

    response = await authorized_client.get("/api/v1/tech/techniciens/available")
    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [test_technicien.id]
    assert response.json()[0]["user"]["nom"] == "Martin"


async def test_read_technicien_not_found(authorized_client: AsyncClient):
    """(failure) unknown technician answers 404"""
    response = await authorized_client.get("/api/v1/tech/techniciens/999")
    assert response.status_code == 404


async def test_delete_technicien_removes_user(
    receptionist_client: AsyncClient, admin_client: AsyncClient, db_session: AsyncSession, test_machine
):
    """(success) the profile and its account go together; finished orders keep their history"""
    payload = {
        "email": "paul@example.com",
        "nom": "Roux",
        "prenom": "Paul",
        "password": "paulpass123",
    }
    body = (await receptionist_client.post("/api/v1/tech/techniciens", json=payload)).json()
    technicien_id, user_id = body["id"], body["user"]["id"]

    db_work_order = wo_models.WorkOrder(
        machine_id=test_machine.id, description="Ancienne intervention",
        technicien_id=technicien_id, status=wo_models.WorkOrderStatus.COMPLETED.value,
    )
    db_session.add(db_work_order)
    await db_session.commit()

    response = await receptionist_client.delete(f"/api/v1/tech/techniciens/{technicien_id}")
    assert response.status_code == 204

    response = await receptionist_client.get(f"/api/v1/tech/techniciens/{technicien_id}")
    assert response.status_code == 404
    response = await admin_client.get(f"/api/v1/usr/users/{user_id}")
    assert response.status_code == 404

    await db_session.refresh(db_work_order)
    assert db_work_order.technicien_id is None


async def test_delete_busy_technicien_conflicts(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien
):
    """(failure) a technician holding an active work order is kept"""
    db_session.add(wo_models.WorkOrder(
        machine_id=test_machine.id, description="En attente",
        technicien_id=test_technicien.id, status=wo_models.WorkOrderStatus.ASSIGNED.value,
    ))
    await db_session.commit()

    response = await receptionist_client.delete(f"/api/v1/tech/techniciens/{test_technicien.id}")
    assert response.status_code == 409

    response = await receptionist_client.get(f"/api/v1/tech/techniciens/{test_technicien.id}")
    assert response.status_code == 200


async def test_delete_technicien_requires_staff(technicien_client: AsyncClient, test_technicien):
    response = await technicien_client.delete(f"/api/v1/tech/techniciens/{test_technicien.id}")
    assert response.status_code == 403


async def test_delete_unknown_technicien(receptionist_client: AsyncClient):
    response = await receptionist_client.delete("/api/v1/tech/techniciens/999")
    assert response.status_code == 404
