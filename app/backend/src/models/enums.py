"""Enumerations shared by models, services and schemas."""

from __future__ import annotations

from enum import Enum


class AppointmentStatus(str, Enum):
    AGENDADO = "AGENDADO"
    CONFIRMADO = "CONFIRMADO"
    FINALIZADO = "FINALIZADO"
    NAO_COMPARECEU = "NAO_COMPARECEU"
    CANCELADO_PROFISSIONAL = "CANCELADO_PROFISSIONAL"
    CANCELADO_ACORDADO = "CANCELADO_ACORDADO"
    CANCELADO_FALTA = "CANCELADO_FALTA"


class AppointmentType(str, Enum):
    CONSULTA = "CONSULTA"
    REUNIAO = "REUNIAO"
    GRUPO = "GRUPO"
    LEMBRETE = "LEMBRETE"
    TAREFA = "TAREFA"


class InvoiceStatus(str, Enum):
    PENDENTE = "PENDENTE"
    ENVIADO = "ENVIADO"
    PAGO = "PAGO"
    CANCELADO = "CANCELADO"


class InvoiceItemType(str, Enum):
    SESSAO_REGULAR = "SESSAO_REGULAR"
    SESSAO_EXTRA = "SESSAO_EXTRA"
    SESSAO_GRUPO = "SESSAO_GRUPO"
    REUNIAO_ESCOLA = "REUNIAO_ESCOLA"
    CREDITO = "CREDITO"


__all__ = [
    "AppointmentStatus",
    "AppointmentType",
    "InvoiceItemType",
    "InvoiceStatus",
]
