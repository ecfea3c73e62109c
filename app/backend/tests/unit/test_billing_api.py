"""API tests for the billing endpoints."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_clinic_billing.db")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from app.backend.src.db import get_engine, session_scope
from app.backend.src.main import app
from app.backend.src.models import (
    Appointment,
    Clinic,
    Patient,
    ProfessionalProfile,
    Recurrence,
)
from app.backend.src.models.base import Base


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def seeded() -> dict[str, int]:
    """Two patients with March sessions; Bruno comes earlier in the week."""

    with session_scope() as session:
        clinic = Clinic(name="Clínica", tax_percentage=Decimal("10"))
        session.add(clinic)
        session.flush()
        professional = ProfessionalProfile(
            clinic_id=clinic.id, name="Dra. Helena", repasse_percentage=Decimal("80")
        )
        session.add(professional)
        session.flush()

        ids: dict[str, int] = {"clinic_id": clinic.id, "professional_id": professional.id}
        for key, name, weekday, day in (("ana", "Ana", 3, 6), ("bruno", "Bruno", 1, 4)):
            patient = Patient(clinic_id=clinic.id, name=name, session_fee=Decimal("150"))
            session.add(patient)
            session.flush()
            recurrence = Recurrence(
                clinic_id=clinic.id,
                professional_profile_id=professional.id,
                patient_id=patient.id,
                day_of_week=weekday,
                start_time="10:00",
            )
            session.add(recurrence)
            session.flush()
            scheduled = datetime(2024, 3, day, 10, 0)
            appointment = Appointment(
                clinic_id=clinic.id,
                professional_profile_id=professional.id,
                patient_id=patient.id,
                recurrence_id=recurrence.id,
                scheduled_at=scheduled,
                end_at=scheduled + timedelta(minutes=50),
                status="AGENDADO",
                type="CONSULTA",
            )
            session.add(appointment)
            session.flush()
            ids[f"{key}_patient"] = patient.id
            ids[f"{key}_appointment"] = appointment.id
        return ids


def _base(seeded: dict[str, int]) -> str:
    return f"/api/clinics/{seeded['clinic_id']}"


def _finish_and_generate(client: TestClient, seeded: dict[str, int]) -> dict:
    for key in ("ana_appointment", "bruno_appointment"):
        response = client.patch(
            f"{_base(seeded)}/appointments/{seeded[key]}/status", json={"status": "FINALIZADO"}
        )
        assert response.status_code == 200, response.text

    response = client.post(
        f"{_base(seeded)}/invoices/generate",
        json={"professional_id": seeded["professional_id"], "month": 3, "year": 2024},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_liveness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "live"


def test_status_update_returns_audit_and_next_statuses(
    client: TestClient, seeded: dict[str, int]
) -> None:
    response = client.patch(
        f"{_base(seeded)}/appointments/{seeded['ana_appointment']}/status",
        json={"status": "CANCELADO_ACORDADO", "actor_id": 7},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["changed"] is True
    assert body["message"] == 'Status alterado para "Desmarcou"'
    assert body["appointment"]["credit_generated"] is True
    assert body["audit"]["old_values"] == {"status": "AGENDADO"}
    assert body["credit_events"] == ["credit_created"]
    assert {option["value"] for option in body["allowed_transitions"]} == {
        "AGENDADO",
        "CANCELADO_FALTA",
        "CANCELADO_PROFISSIONAL",
    }

    credits = client.get(f"{_base(seeded)}/credits", params={"status": "available"})
    assert credits.status_code == 200
    (credit,) = credits.json()
    assert credit["origin_appointment_id"] == seeded["ana_appointment"]
    assert credit["patient_name"] == "Ana"
    assert credit["is_available"] is True


def test_invalid_transition_returns_error_body(client: TestClient, seeded: dict[str, int]) -> None:
    url = f"{_base(seeded)}/appointments/{seeded['ana_appointment']}/status"
    client.patch(url, json={"status": "CONFIRMADO"})

    response = client.patch(url, json={"status": "AGENDADO"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "TransitionError"
    assert error["details"]["currentStatus"] == "CONFIRMADO"
    assert "FINALIZADO" in {t["value"] for t in error["details"]["allowedTransitions"]}


def test_unknown_appointment_returns_404(client: TestClient, seeded: dict[str, int]) -> None:
    response = client.patch(
        f"{_base(seeded)}/appointments/99999/status", json={"status": "CONFIRMADO"}
    )

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "NotFoundError"


def test_generate_list_and_fetch_invoices(client: TestClient, seeded: dict[str, int]) -> None:
    generated = _finish_and_generate(client, seeded)

    assert len(generated["invoices"]) == 2
    assert generated["skipped"] == []

    listing = client.get(
        f"{_base(seeded)}/invoices",
        params={"month": 3, "year": 2024, "professional_id": seeded["professional_id"]},
    )
    assert listing.status_code == 200
    names = [invoice["patient_name"] for invoice in listing.json()]
    assert names == ["Bruno", "Ana"]

    invoice_id = listing.json()[0]["id"]
    detail = client.get(f"{_base(seeded)}/invoices/{invoice_id}")
    assert detail.status_code == 200
    body = detail.json()
    assert Decimal(body["total_amount"]) == Decimal("150.00")
    assert body["due_date"] == "2024-03-15"
    assert [item["type"] for item in body["items"]] == ["SESSAO_REGULAR"]
    assert "Bruno" in body["message_body"]


def test_manual_item_lifecycle(client: TestClient, seeded: dict[str, int]) -> None:
    generated = _finish_and_generate(client, seeded)
    invoice_id = generated["invoices"][0]["id"]
    items_url = f"{_base(seeded)}/invoices/{invoice_id}/items"

    rejected = client.post(
        items_url, json={"type": "CREDITO", "description": "Ajuste", "unit_price": "10"}
    )
    assert rejected.status_code == 400
    assert rejected.json()["error"]["type"] == "ValidationError"

    created = client.post(
        items_url,
        json={"type": "SESSAO_EXTRA", "description": "Sessão extra", "unit_price": "150"},
    )
    assert created.status_code == 201, created.text
    item_id = created.json()["id"]

    updated = client.patch(f"{items_url}/{item_id}", json={"quantity": 2})
    assert updated.status_code == 200
    assert Decimal(updated.json()["total"]) == Decimal("300.00")

    invoice = client.get(f"{_base(seeded)}/invoices/{invoice_id}").json()
    assert Decimal(invoice["total_amount"]) == Decimal("450.00")

    deleted = client.delete(f"{items_url}/{item_id}")
    assert deleted.status_code == 204
    invoice = client.get(f"{_base(seeded)}/invoices/{invoice_id}").json()
    assert Decimal(invoice["total_amount"]) == Decimal("150.00")


def test_mark_paid_then_delete_invoice(client: TestClient, seeded: dict[str, int]) -> None:
    generated = _finish_and_generate(client, seeded)
    invoice_id = generated["invoices"][0]["id"]
    invoice_url = f"{_base(seeded)}/invoices/{invoice_id}"

    paid = client.patch(invoice_url, json={"status": "PAGO"})
    assert paid.status_code == 200
    assert paid.json()["status"] == "PAGO"
    assert paid.json()["paid_at"] is not None

    bad = client.patch(invoice_url, json={"status": "QUITADO"})
    assert bad.status_code == 400

    assert client.delete(invoice_url).status_code == 204
    assert client.get(invoice_url).status_code == 404


def test_invoice_pdf_download(client: TestClient, seeded: dict[str, int]) -> None:
    generated = _finish_and_generate(client, seeded)
    invoice_id = generated["invoices"][0]["id"]

    response = client.get(f"{_base(seeded)}/invoices/{invoice_id}/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert "Fatura_" in response.headers["content-disposition"]


def test_invoice_of_other_clinic_is_not_found(client: TestClient, seeded: dict[str, int]) -> None:
    generated = _finish_and_generate(client, seeded)
    invoice_id = generated["invoices"][0]["id"]

    response = client.get(f"/api/clinics/{seeded['clinic_id'] + 1}/invoices/{invoice_id}")

    assert response.status_code == 404


def test_generate_rejects_bad_period(client: TestClient, seeded: dict[str, int]) -> None:
    response = client.post(
        f"{_base(seeded)}/invoices/generate",
        json={"professional_id": seeded["professional_id"], "month": 13, "year": 2024},
    )

    assert response.status_code == 422


def test_repasse_report(client: TestClient, seeded: dict[str, int]) -> None:
    _finish_and_generate(client, seeded)

    response = client.get(f"{_base(seeded)}/repasse", params={"month": 3, "year": 2024})

    assert response.status_code == 200, response.text
    body = response.json()
    assert Decimal(body["tax_percent"]) == Decimal("10")
    (professional,) = body["professionals"]
    summary = professional["summary"]
    assert summary["total_invoices"] == 2
    assert Decimal(summary["total_gross"]) == Decimal("300.00")
    assert Decimal(summary["total_tax"]) == Decimal("30.00")
    assert Decimal(summary["total_repasse"]) == Decimal("216.00")
