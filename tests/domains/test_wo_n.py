# tests/domains/test_wo_n.py

"""
Integration tests of the 'wo' domain: work order lifecycle, cascades to
technician availability and machine status, signature, confirmation,
images, invoice and administrative delete.
"""

import os
from datetime import datetime, timedelta, UTC
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.config import settings
from gmao.core.roles import UserRole
from gmao.domains.asset import models as asset_models
from gmao.domains.tech import models as tech_models
from gmao.domains.wo import models as wo_models
from gmao.main import app as main_app
from gmao.services.work_order_service import duration_minutes

WO_URL = "/api/v1/wo/work_orders"

Status = wo_models.WorkOrderStatus
MachineStatut = asset_models.MachineStatut
TechStatut = tech_models.TechnicienStatut


async def _create_work_order(client: AsyncClient, machine_id: int, **kwargs) -> dict:
    payload = {"machine_id": machine_id, "description": kwargs.pop("description", "Le four ne chauffe plus")}
    payload.update(kwargs)
    response = await client.post(WO_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def _set_status(client: AsyncClient, work_order_id: int, status: Status, **kwargs):
    return await client.patch(f"{WO_URL}/{work_order_id}/status", json={"status": status.value, **kwargs})


async def _assign(client: AsyncClient, work_order_id: int, technicien_id: int):
    return await client.post(f"{WO_URL}/{work_order_id}/assign", json={"technicien_id": technicien_id})


class RecordingPool:
    """Stands in for the arq pool and records enqueued jobs."""

    def __init__(self):
        self.jobs = []

    async def enqueue_job(self, function, *args):
        self.jobs.append((function, *args))


# =================================================================================
# 1. State machine table
# =================================================================================
@pytest.mark.parametrize(
    "current, target, expected",
    [
        (Status.REPORTED, Status.ASSIGNED, True),
        (Status.REPORTED, Status.CANCELLED, True),
        (Status.REPORTED, Status.IN_PROGRESS, False),
        (Status.REPORTED, Status.COMPLETED, False),
        (Status.ASSIGNED, Status.IN_PROGRESS, True),
        (Status.ASSIGNED, Status.REPORTED, False),
        (Status.IN_PROGRESS, Status.PENDING_PARTS, True),
        (Status.IN_PROGRESS, Status.COMPLETED, True),
        (Status.PENDING_PARTS, Status.IN_PROGRESS, True),
        (Status.PENDING_PARTS, Status.COMPLETED, False),
        (Status.COMPLETED, Status.CANCELLED, False),
        (Status.CANCELLED, Status.REPORTED, False),
    ],
)
def test_can_transition(current, target, expected):
    assert wo_models.can_transition(current, target) is expected


def test_terminal_statuses_have_no_exit():
    for status in wo_models.TERMINAL_STATUSES:
        assert wo_models.allowed_transitions(status) == []


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (timedelta(minutes=90), 90),
        (timedelta(minutes=90, seconds=29), 90),
        (timedelta(minutes=90, seconds=30), 91),
        (timedelta(seconds=10), 0),
    ],
)
def test_duration_minutes_rounds_half_up(elapsed, expected):
    started = datetime(2024, 3, 1, 8, 0, tzinfo=UTC)
    assert duration_minutes(started, started + elapsed) == expected


def test_duration_minutes_accepts_naive_timestamps():
    started = datetime(2024, 3, 1, 8, 0)
    assert duration_minutes(started, datetime(2024, 3, 1, 9, 0, tzinfo=UTC)) == 60


# =================================================================================
# 2. Creation, listing, detail
# =================================================================================
async def test_create_work_order_defaults(authorized_client: AsyncClient, test_machine, test_user):
    """(success) a report starts 'reported' with the default classification"""
    body = await _create_work_order(authorized_client, test_machine.id)
    assert body["status"] == Status.REPORTED.value
    assert body["type"] == "corrective"
    assert body["origin"] == "breakdown"
    assert body["priority"] == "medium"
    assert body["reported_by_id"] == test_user.id
    assert body["technicien_id"] is None
    assert body["date_reported"] is not None
    assert body["date_started"] is None
    assert Decimal(body["total_cost"]) == Decimal("0")


async def test_create_work_order_unknown_machine(authorized_client: AsyncClient):
    """(failure) the machine must exist"""
    response = await authorized_client.post(WO_URL, json={"machine_id": 999, "description": "x"})
    assert response.status_code == 404
    assert response.json()["details"]["entity"] == "Machine"


@pytest.mark.parametrize("description", ["", "   "])
async def test_create_work_order_blank_description(authorized_client: AsyncClient, test_machine, description):
    """(failure) an empty or whitespace-only description is refused the same way"""
    response = await authorized_client.post(WO_URL, json={"machine_id": test_machine.id, "description": description})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"
    assert response.json()["details"]["field"] == "description"


async def test_list_work_orders_filters_and_pages(authorized_client: AsyncClient, test_machine):
    await _create_work_order(authorized_client, test_machine.id, priority="high", description="Porte bloquee")
    await _create_work_order(authorized_client, test_machine.id, priority="low", description="Voyant eteint")
    await _create_work_order(authorized_client, test_machine.id, priority="high", description="Fuite de vapeur")

    response = await authorized_client.get(WO_URL, params={"priority": "high"})
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await authorized_client.get(WO_URL, params={"search": "vapeur"})
    assert [wo["description"] for wo in response.json()["items"]] == ["Fuite de vapeur"]

    response = await authorized_client.get(WO_URL, params={"page": 2, "limit": 2})
    body = response.json()
    assert body["total"] == 3
    assert body["page"] == 2
    assert body["total_pages"] == 2
    assert len(body["items"]) == 1


async def test_read_work_order_detail(
    receptionist_client: AsyncClient, test_machine, test_technicien
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)

    response = await receptionist_client.get(f"{WO_URL}/{body['id']}")
    assert response.status_code == 200
    detail = response.json()
    assert detail["machine"]["reference"] == test_machine.reference
    assert detail["machine"]["client"]["nom"] == "Boulangerie Dupont"
    assert detail["technicien"]["user"]["nom"] == "Martin"
    assert detail["pieces_utilisees"] == []


async def test_update_work_order_descriptive_fields(authorized_client: AsyncClient, test_machine):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await authorized_client.put(
        f"{WO_URL}/{body['id']}",
        json={"priority": "critical", "severity": "major", "estimated_duration": 45},
    )
    assert response.status_code == 200
    assert response.json()["priority"] == "critical"
    assert response.json()["severity"] == "major"
    assert response.json()["status"] == Status.REPORTED.value


@pytest.mark.parametrize("description", ["", "  "])
async def test_update_work_order_blank_description(authorized_client: AsyncClient, test_machine, description):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await authorized_client.put(f"{WO_URL}/{body['id']}", json={"description": description})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


# =================================================================================
# 3. Lifecycle scenarios
# =================================================================================
async def test_full_lifecycle(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien
):
    """(success) report, assign, start, complete with cascades at each step"""
    body = await _create_work_order(receptionist_client, test_machine.id, type="corrective", priority="high")
    work_order_id = body["id"]

    # assign: technician becomes busy
    response = await _assign(receptionist_client, work_order_id, test_technicien.id)
    assert response.status_code == 200
    assert response.json()["status"] == Status.ASSIGNED.value
    await db_session.refresh(test_technicien)
    assert test_technicien.statut == TechStatut.EN_INTERVENTION.value

    # start: machine goes under maintenance
    response = await _set_status(receptionist_client, work_order_id, Status.IN_PROGRESS)
    assert response.status_code == 200
    assert response.json()["date_started"] is not None
    await db_session.refresh(test_machine)
    assert test_machine.statut == MachineStatut.EN_MAINTENANCE.value

    # Given the work started 90 minutes ago
    db_work_order = await db_session.get(wo_models.WorkOrder, work_order_id)
    db_work_order.date_started = datetime.now(UTC) - timedelta(minutes=90)
    db_session.add(db_work_order)
    await db_session.commit()

    # When it is completed
    response = await _set_status(
        receptionist_client, work_order_id, Status.COMPLETED,
        resolution="Thermostat remplace", labor_cost="150.00", parts_cost="0",
    )

    # Then costs, duration and both cascades are applied
    assert response.status_code == 200
    completed = response.json()
    assert completed["status"] == Status.COMPLETED.value
    assert completed["date_completed"] is not None
    assert completed["actual_duration"] == 90
    assert completed["resolution"] == "Thermostat remplace"
    assert Decimal(completed["labor_cost"]) == Decimal("150.00")
    assert Decimal(completed["parts_cost"]) == Decimal("0")
    assert Decimal(completed["total_cost"]) == Decimal("150.00")

    await db_session.refresh(test_technicien)
    await db_session.refresh(test_machine)
    assert test_technicien.statut == TechStatut.DISPONIBLE.value
    assert test_machine.statut == MachineStatut.EN_SERVICE.value


async def test_invalid_transition_is_rejected(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine
):
    """(failure) reported -> completed is not an edge"""
    body = await _create_work_order(receptionist_client, test_machine.id)

    response = await _set_status(receptionist_client, body["id"], Status.COMPLETED)
    assert response.status_code == 400
    error = response.json()
    assert error["code"] == "INVALID_TRANSITION"
    assert error["details"]["current_status"] == "reported"
    assert error["details"]["requested_status"] == "completed"
    assert sorted(error["details"]["allowed_transitions"]) == ["assigned", "cancelled"]

    db_work_order = await db_session.get(wo_models.WorkOrder, body["id"])
    assert db_work_order.status == Status.REPORTED.value
    assert db_work_order.date_completed is None


async def test_terminal_work_order_cannot_move(
    receptionist_client: AsyncClient, test_machine
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    assert (await _set_status(receptionist_client, body["id"], Status.CANCELLED)).status_code == 200

    response = await _set_status(receptionist_client, body["id"], Status.ASSIGNED)
    assert response.status_code == 400
    assert response.json()["details"]["allowed_transitions"] == []


async def test_date_started_is_kept_on_resume(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien
):
    """(success) resuming after pending_parts keeps the first start date"""
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)
    first = (await _set_status(receptionist_client, body["id"], Status.IN_PROGRESS)).json()

    response = await _set_status(receptionist_client, body["id"], Status.PENDING_PARTS)
    assert response.status_code == 200
    await db_session.refresh(test_machine)
    assert test_machine.statut == MachineStatut.EN_MAINTENANCE.value

    resumed = (await _set_status(receptionist_client, body["id"], Status.IN_PROGRESS)).json()
    assert resumed["date_started"] == first["date_started"]


async def test_machine_stays_in_maintenance_while_other_work_is_open(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien
):
    first = await _create_work_order(receptionist_client, test_machine.id)
    second = await _create_work_order(receptionist_client, test_machine.id)
    for work_order in (first, second):
        await _assign(receptionist_client, work_order["id"], test_technicien.id)
        await _set_status(receptionist_client, work_order["id"], Status.IN_PROGRESS)

    await _set_status(receptionist_client, first["id"], Status.COMPLETED)
    await db_session.refresh(test_machine)
    await db_session.refresh(test_technicien)
    assert test_machine.statut == MachineStatut.EN_MAINTENANCE.value
    assert test_technicien.statut == TechStatut.EN_INTERVENTION.value

    await _set_status(receptionist_client, second["id"], Status.CANCELLED)
    await db_session.refresh(test_machine)
    await db_session.refresh(test_technicien)
    assert test_machine.statut == MachineStatut.EN_SERVICE.value
    assert test_technicien.statut == TechStatut.DISPONIBLE.value


async def test_cancel_keeps_technicien_busy_with_other_assignment(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien
):
    first = await _create_work_order(receptionist_client, test_machine.id)
    second = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, first["id"], test_technicien.id)
    await _assign(receptionist_client, second["id"], test_technicien.id)

    await _set_status(receptionist_client, first["id"], Status.CANCELLED)
    await db_session.refresh(test_technicien)
    assert test_technicien.statut == TechStatut.EN_INTERVENTION.value

    await _set_status(receptionist_client, second["id"], Status.CANCELLED)
    await db_session.refresh(test_technicien)
    assert test_technicien.statut == TechStatut.DISPONIBLE.value


# =================================================================================
# 4. Assignment
# =================================================================================
async def test_reassign_releases_previous_technicien(
    receptionist_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien, user_factory
):
    other_user = await user_factory("tech2@example.com", "tech2pass123", roles=[UserRole.TECHNICIEN])
    other = tech_models.Technicien(user_id=other_user.id)
    db_session.add(other)
    await db_session.commit()
    await db_session.refresh(other)

    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)
    response = await _assign(receptionist_client, body["id"], other.id)
    assert response.status_code == 200
    assert response.json()["technicien_id"] == other.id
    assert response.json()["status"] == Status.ASSIGNED.value

    await db_session.refresh(test_technicien)
    await db_session.refresh(other)
    assert test_technicien.statut == TechStatut.DISPONIBLE.value
    assert other.statut == TechStatut.EN_INTERVENTION.value


async def test_assign_after_start_is_rejected(
    receptionist_client: AsyncClient, test_machine, test_technicien
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)
    await _set_status(receptionist_client, body["id"], Status.IN_PROGRESS)

    response = await _assign(receptionist_client, body["id"], test_technicien.id)
    assert response.status_code == 400
    assert response.json()["details"]["current_status"] == "in_progress"
    assert response.json()["details"]["requested_status"] == "assigned"


async def test_assign_unknown_technicien(receptionist_client: AsyncClient, test_machine):
    body = await _create_work_order(receptionist_client, test_machine.id)
    response = await _assign(receptionist_client, body["id"], 999)
    assert response.status_code == 404


async def test_assign_requires_staff(authorized_client: AsyncClient, test_machine, test_technicien):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await _assign(authorized_client, body["id"], test_technicien.id)
    assert response.status_code == 403


# =================================================================================
# 5. Notifications
# =================================================================================
async def test_lifecycle_emits_notifications(
    receptionist_client: AsyncClient, test_machine, test_technicien, monkeypatch
):
    pool = RecordingPool()
    monkeypatch.setattr(main_app.state, "redis", pool, raising=False)

    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)
    await _set_status(receptionist_client, body["id"], Status.IN_PROGRESS)

    events = [job[1] for job in pool.jobs]
    assert events == ["work_order.created", "work_order.assigned", "work_order.status_changed"]
    assert all(job[0] == "dispatch_notification_task" for job in pool.jobs)
    assert pool.jobs[2][2] == {"work_order_id": body["id"], "from": "assigned", "to": "in_progress"}


async def test_failed_transition_emits_nothing(
    receptionist_client: AsyncClient, test_machine, monkeypatch
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    pool = RecordingPool()
    monkeypatch.setattr(main_app.state, "redis", pool, raising=False)

    await _set_status(receptionist_client, body["id"], Status.COMPLETED)
    assert pool.jobs == []


# =================================================================================
# 6. Signature and technician confirmation
# =================================================================================
async def test_attach_signature(authorized_client: AsyncClient, test_machine):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await authorized_client.post(
        f"{WO_URL}/{body['id']}/signature",
        json={"signature": "data:image/png;base64,iVBORw0KGgo=", "signer_name": "M. Dupont"},
    )
    assert response.status_code == 200
    assert response.json()["signature_client_name"] == "M. Dupont"
    assert response.json()["signature_client_at"] is not None

    detail = (await authorized_client.get(f"{WO_URL}/{body['id']}")).json()
    assert detail["signature_client"] == "data:image/png;base64,iVBORw0KGgo="


async def test_assigned_technicien_confirms(
    receptionist_client: AsyncClient, technicien_client: AsyncClient, test_machine, test_technicien
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)

    response = await technicien_client.post(f"{WO_URL}/{body['id']}/confirm")
    assert response.status_code == 200
    assert response.json()["confirmed_by_tech"] is True
    assert response.json()["confirmed_by_tech_at"] is not None


async def test_other_user_cannot_confirm(
    receptionist_client: AsyncClient, authorized_client: AsyncClient, test_machine, test_technicien
):
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)

    response = await authorized_client.post(f"{WO_URL}/{body['id']}/confirm")
    assert response.status_code == 403


async def test_confirm_without_technicien(receptionist_client: AsyncClient, test_machine):
    body = await _create_work_order(receptionist_client, test_machine.id)
    response = await receptionist_client.post(f"{WO_URL}/{body['id']}/confirm")
    assert response.status_code == 400


# =================================================================================
# 7. Images
# =================================================================================
async def test_upload_and_delete_images(authorized_client: AsyncClient, test_machine, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    body = await _create_work_order(authorized_client, test_machine.id)

    # Given one valid image and one unsupported file
    files = [
        ("files", ("photo.png", b"\x89PNG\r\n\x1a\nfake", "image/png")),
        ("files", ("notes.txt", b"not an image", "text/plain")),
    ]
    response = await authorized_client.post(f"{WO_URL}/{body['id']}/images", files=files)

    # Then the valid one is stored and the other skipped
    assert response.status_code == 200
    images = response.json()["images"]
    assert len(images) == 1
    assert images[0].startswith(f"/uploads/work_orders/{body['id']}/")
    stored = tmp_path / images[0][len("/uploads/"):]
    assert stored.exists()

    response = await authorized_client.delete(f"{WO_URL}/{body['id']}/images", params={"url": images[0]})
    assert response.status_code == 200
    assert response.json()["images"] == []
    assert not os.path.exists(stored)


async def test_upload_fails_when_no_file_is_stored(
    authorized_client: AsyncClient, test_machine, tmp_path, monkeypatch
):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    body = await _create_work_order(authorized_client, test_machine.id)

    files = [("files", ("empty.jpg", b"", "image/jpeg"))]
    response = await authorized_client.post(f"{WO_URL}/{body['id']}/images", files=files)
    assert response.status_code == 502

    detail = (await authorized_client.get(f"{WO_URL}/{body['id']}")).json()
    assert detail["images"] == []


async def test_delete_unknown_image(authorized_client: AsyncClient, test_machine):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await authorized_client.delete(
        f"{WO_URL}/{body['id']}/images", params={"url": "/uploads/work_orders/x.png"}
    )
    assert response.status_code == 404


# =================================================================================
# 8. Invoice and administrative delete
# =================================================================================
async def test_invoice_requires_completed_work_order(authorized_client: AsyncClient, test_machine):
    body = await _create_work_order(authorized_client, test_machine.id)
    response = await authorized_client.get(f"{WO_URL}/{body['id']}/invoice")
    assert response.status_code == 409


async def test_invoice_snapshot(
    receptionist_client: AsyncClient, test_machine, test_technicien, piece_factory
):
    db_piece = await piece_factory("P-INV", prix_unitaire="12.50", quantite_stock=10)
    body = await _create_work_order(receptionist_client, test_machine.id)
    await _assign(receptionist_client, body["id"], test_technicien.id)
    await _set_status(receptionist_client, body["id"], Status.IN_PROGRESS)
    await receptionist_client.post(
        f"{WO_URL}/{body['id']}/pieces", json={"piece_id": db_piece.id, "quantite": 2}
    )
    await _set_status(receptionist_client, body["id"], Status.COMPLETED, labor_cost="80.00")

    response = await receptionist_client.get(f"{WO_URL}/{body['id']}/invoice")
    assert response.status_code == 200
    invoice = response.json()
    assert invoice["numero"] == f"FAC-{body['id']:06d}"
    assert invoice["filename"] == f"facture_{body['id']:06d}.pdf"
    assert invoice["client"]["nom"] == "Boulangerie Dupont"
    assert invoice["machine"]["nom"] == test_machine.reference
    assert invoice["technicien"]["nom"] == "Test Martin"
    assert len(invoice["lignes"]) == 1
    assert invoice["lignes"][0]["reference"] == "P-INV"
    assert Decimal(invoice["lignes"][0]["total"]) == Decimal("25.00")
    assert Decimal(invoice["parts_cost"]) == Decimal("25.00")
    assert Decimal(invoice["total"]) == Decimal("105.00")


async def test_hard_delete_requires_admin(receptionist_client: AsyncClient, test_machine):
    body = await _create_work_order(receptionist_client, test_machine.id)
    response = await receptionist_client.delete(f"{WO_URL}/{body['id']}")
    assert response.status_code == 403


async def test_hard_delete_releases_without_restoring_stock(
    admin_client: AsyncClient, db_session: AsyncSession, test_machine, test_technicien, piece_factory
):
    db_piece = await piece_factory("P-DEL", quantite_stock=10)
    body = await _create_work_order(admin_client, test_machine.id)
    await _assign(admin_client, body["id"], test_technicien.id)
    await _set_status(admin_client, body["id"], Status.IN_PROGRESS)
    await admin_client.post(f"{WO_URL}/{body['id']}/pieces", json={"piece_id": db_piece.id, "quantite": 4})

    response = await admin_client.delete(f"{WO_URL}/{body['id']}")
    assert response.status_code == 204

    assert (await admin_client.get(f"{WO_URL}/{body['id']}")).status_code == 404
    await db_session.refresh(db_piece)
    await db_session.refresh(test_machine)
    await db_session.refresh(test_technicien)
    assert db_piece.quantite_stock == 6
    assert test_machine.statut == MachineStatut.EN_SERVICE.value
    assert test_technicien.statut == TechStatut.DISPONIBLE.value
