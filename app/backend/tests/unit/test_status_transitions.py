"""Unit tests for the appointment status state machine."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from app.backend.src.core.errors import TransitionError, ValidationError
from app.backend.src.models.enums import AppointmentStatus
from app.backend.src.services.status_transitions import (
    STATUS_LABELS,
    VALID_TRANSITIONS,
    allowed_transitions,
    compute_status_update_data,
    ensure_valid_transition,
    is_valid_transition,
    parse_status,
    should_update_last_visit_at,
)

NOW = datetime(2024, 3, 10, 12, 0)


def test_every_status_has_a_transition_entry_and_label() -> None:
    assert set(VALID_TRANSITIONS) == set(AppointmentStatus)
    assert set(STATUS_LABELS) == set(AppointmentStatus)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("AGENDADO", "CONFIRMADO"),
        ("AGENDADO", "FINALIZADO"),
        ("CONFIRMADO", "NAO_COMPARECEU"),
        ("CONFIRMADO", "CANCELADO_FALTA"),
        ("CANCELADO_ACORDADO", "CANCELADO_FALTA"),
        ("CANCELADO_FALTA", "AGENDADO"),
        ("CANCELADO_PROFISSIONAL", "CANCELADO_ACORDADO"),
    ],
)
def test_listed_transitions_are_valid(current: str, target: str) -> None:
    assert is_valid_transition(current, target) is True


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("CONFIRMADO", "AGENDADO"),
        ("FINALIZADO", "AGENDADO"),
        ("FINALIZADO", "CANCELADO_FALTA"),
        ("NAO_COMPARECEU", "FINALIZADO"),
        ("CANCELADO_FALTA", "CONFIRMADO"),
        ("CANCELADO_ACORDADO", "FINALIZADO"),
    ],
)
def test_unlisted_transitions_are_rejected(current: str, target: str) -> None:
    assert is_valid_transition(current, target) is False


def test_unknown_statuses_are_never_valid() -> None:
    assert is_valid_transition("AGENDADO", "PERDIDO") is False
    assert is_valid_transition("PERDIDO", "AGENDADO") is False


def test_same_status_is_not_a_transition() -> None:
    for status in AppointmentStatus:
        assert is_valid_transition(status, status) is False


def test_terminal_statuses_allow_nothing() -> None:
    assert allowed_transitions("FINALIZADO") == []
    assert allowed_transitions("NAO_COMPARECEU") == []


def test_allowed_transitions_carry_labels() -> None:
    options = allowed_transitions("CANCELADO_FALTA")

    assert {"value": "AGENDADO", "label": "Agendado"} in options
    assert {"value": "CANCELADO_ACORDADO", "label": "Desmarcou"} in options
    assert all(option["value"] != "CANCELADO_FALTA" for option in options)


def test_ensure_valid_transition_reports_allowed_targets() -> None:
    with pytest.raises(TransitionError) as excinfo:
        ensure_valid_transition("CONFIRMADO", "AGENDADO")

    error = excinfo.value
    assert error.status_code == 400
    assert error.details["currentStatus"] == "CONFIRMADO"
    assert error.details["targetStatus"] == "AGENDADO"
    allowed = {option["value"] for option in error.details["allowedTransitions"]}
    assert "FINALIZADO" in allowed and "AGENDADO" not in allowed


def test_parse_status_rejects_unknown_and_empty_values() -> None:
    assert parse_status(" FINALIZADO ") is AppointmentStatus.FINALIZADO

    with pytest.raises(ValidationError, match="não é válido"):
        parse_status("REMARCADO")
    with pytest.raises(ValidationError, match="obrigatório"):
        parse_status("")
    with pytest.raises(ValidationError):
        parse_status(None)


def test_confirming_stamps_confirmed_at() -> None:
    assert compute_status_update_data("CONFIRMADO", NOW) == {
        "status": "CONFIRMADO",
        "confirmed_at": NOW,
    }


@pytest.mark.parametrize(
    "target", ["CANCELADO_PROFISSIONAL", "CANCELADO_ACORDADO", "CANCELADO_FALTA"]
)
def test_cancelling_stamps_cancelled_at(target: str) -> None:
    assert compute_status_update_data(target, NOW) == {"status": target, "cancelled_at": NOW}


def test_undo_to_agendado_clears_timestamps() -> None:
    assert compute_status_update_data("AGENDADO", NOW) == {
        "status": "AGENDADO",
        "confirmed_at": None,
        "cancelled_at": None,
    }


def test_finishing_only_changes_status() -> None:
    assert compute_status_update_data("FINALIZADO", NOW) == {"status": "FINALIZADO"}
    assert compute_status_update_data("NAO_COMPARECEU", NOW) == {"status": "NAO_COMPARECEU"}


def test_only_finalizado_updates_last_visit() -> None:
    assert should_update_last_visit_at("FINALIZADO") is True
    assert should_update_last_visit_at("CONFIRMADO") is False
    assert should_update_last_visit_at("NAO_COMPARECEU") is False
