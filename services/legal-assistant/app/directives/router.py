import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from dateutil import parser as dateparser
from dateutil import tz
from langsmith import traceable

from app.config import settings
from app.directives.normalize import normalize_name
from app.directives.resolver import (
    DirectoryKind,
    resolve_by_name,
    resolve_case_by_number,
    resolve_client_by_id,
)
from app.directives.validation import RequiredField, first_missing
from app.directory import Directory, DirectoryError
from app.models import AppointmentStatus, ExpedienteOrigin, ExpedienteStatus
from app.observability import record_directive_outcome
from app.schemas.directives import ActionResult, Directive, DirectiveAction, Outcome
from app.utils import utcnow

logger = structlog.get_logger("action_router")

ActionHandler = Callable[[Directory, str, dict[str, str]], ActionResult]

CONFIRMATIONS = {
    DirectiveAction.CREATE_CLIENT: "Cliente creado con éxito.",
    DirectiveAction.CREATE_EXPEDIENTE: "Expediente creado con éxito.",
    DirectiveAction.AGENDAR_CITA: "Cita agendada con éxito.",
}

PURPOSES = {
    DirectiveAction.CREATE_CLIENT: "crear el cliente",
    DirectiveAction.CREATE_EXPEDIENTE: "crear el expediente",
    DirectiveAction.AGENDAR_CITA: "agendar la cita",
}

# the workflow sometimes says "mail" instead of "email"
CLIENT_FIELD_ALIASES = {"mail": "email"}

CLIENT_REQUIRED = [
    RequiredField("name", "el nombre del cliente"),
    RequiredField("email", "el correo electrónico"),
    RequiredField("phone", "el teléfono"),
]

EXPEDIENTE_FIELD_MAP = {
    "numero": "numeroExpediente",
    "cliente": "clientName",
    "titulo": "title",
    "estado": "status",
    "fechaLimite": "dueDate",
    "tipo": "tipoProceso",
}

EXPEDIENTE_REQUIRED = [
    RequiredField("numeroExpediente", "el número de expediente"),
    RequiredField("clientName", "el nombre del cliente"),
    RequiredField("title", "el título del expediente"),
]

DEFAULT_ORIGEN = ExpedienteOrigin.OFICINAS
DEFAULT_EXPEDIENTE_STATUS = ExpedienteStatus.ACTIVO
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.PROGRAMADA

# keys are normalize_name() output
EXPEDIENTE_STATUS_MAP = {
    "activo": ExpedienteStatus.ACTIVO,
    "abierto": ExpedienteStatus.ACTIVO,
    "en curso": ExpedienteStatus.ACTIVO,
    "pendiente": ExpedienteStatus.PENDIENTE,
    "cerrado": ExpedienteStatus.CERRADO,
    "concluido": ExpedienteStatus.CERRADO,
}

APPOINTMENT_STATUS_MAP = {
    "programada": AppointmentStatus.PROGRAMADA,
    "pendiente": AppointmentStatus.PROGRAMADA,
    "confirmada": AppointmentStatus.PROGRAMADA,
    "completada": AppointmentStatus.COMPLETADA,
    "realizada": AppointmentStatus.COMPLETADA,
    "cancelada": AppointmentStatus.CANCELADA,
}

CASE_NUMBER_KEYS = ("caseId", "numeroExpediente", "expediente", "numero")
CLIENT_NAME_KEYS = ("clientName", "cliente", "nombreCliente")
COMBINED_DATE_KEYS = ("fechaHora", "date", "fecha")
TITLE_KEYS = ("motivo", "titulo", "title")
APPOINTMENT_DATE_LABEL = "la fecha de la cita"
CASE_OR_CLIENT_LABEL = "el número de expediente o el nombre del cliente"

_YEAR_FIRST = re.compile(r"^\s*\d{4}[-/]")


@traceable(name="route_directive", run_type="chain")
def route(directive: Directive, directory: Directory, tenant_id: str) -> ActionResult:
    handler = ACTION_HANDLERS[directive.action]
    result = handler(directory, tenant_id, dict(directive.data))
    outcome = result.outcome.value if result.outcome else "unknown"
    record_directive_outcome(directive.action.value, outcome)
    logger.info(
        "directive_dispatched" if result.success else "directive_rejected",
        action=directive.action.value,
        outcome=outcome,
        status_code=result.status_code,
    )
    return result


# ---------- handlers ----------


def create_client(directory: Directory, tenant_id: str, data: dict[str, str]) -> ActionResult:
    action = DirectiveAction.CREATE_CLIENT
    for alias, target in CLIENT_FIELD_ALIASES.items():
        if alias in data:
            value = data.pop(alias)
            if not (data.get(target) or "").strip():
                data[target] = value

    missing = first_missing(data, CLIENT_REQUIRED)
    if missing:
        return _missing(action, missing)

    try:
        client = directory.create_client(data, tenant_id)
    except DirectoryError as exc:
        return _failed(exc)
    return _dispatched(action, "client", client.model_dump(mode="json"))


def create_expediente(directory: Directory, tenant_id: str, data: dict[str, str]) -> ActionResult:
    action = DirectiveAction.CREATE_EXPEDIENTE
    data = _remap(data, EXPEDIENTE_FIELD_MAP)

    missing = first_missing(data, EXPEDIENTE_REQUIRED)
    if missing:
        return _missing(action, missing)

    due_date = None
    if (data.get("dueDate") or "").strip():
        due_date = parse_timestamp(data["dueDate"])
        if due_date is None:
            return _invalid_date(data["dueDate"])

    client = resolve_by_name(directory, tenant_id, data["clientName"], DirectoryKind.CLIENT)
    if not client:
        return _not_found(
            f'No se encontró el cliente "{data["clientName"].strip()}". '
            "Verifica el nombre o regístralo primero."
        )

    record = {
        "numero_expediente": data["numeroExpediente"].strip(),
        "tipo_proceso": (data.get("tipoProceso") or "").strip() or None,
        "origen": DEFAULT_ORIGEN,
        "title": data["title"].strip(),
        "client_id": client.id,
        "client_name": client.name,
        "status": EXPEDIENTE_STATUS_MAP.get(normalize_name(data.get("status")), DEFAULT_EXPEDIENTE_STATUS),
        "due_date": due_date,
    }
    try:
        expediente = directory.create_expediente(record, tenant_id)
    except DirectoryError as exc:
        return _failed(exc)
    return _dispatched(action, "expediente", expediente.model_dump(mode="json"))


def agendar_cita(directory: Directory, tenant_id: str, data: dict[str, str]) -> ActionResult:
    action = DirectiveAction.AGENDAR_CITA
    case_number = _first_present(data, CASE_NUMBER_KEYS)
    client_name = _first_present(data, CLIENT_NAME_KEYS)
    if not case_number and not client_name:
        return _missing(action, CASE_OR_CLIENT_LABEL)

    when_text = appointment_datetime_text(data)
    if not when_text:
        return _missing(action, APPOINTMENT_DATE_LABEL)
    when = parse_timestamp(when_text)
    if when is None:
        return _invalid_date(when_text)

    expediente = None
    if case_number:
        expediente = resolve_case_by_number(directory, tenant_id, case_number)
        if not expediente:
            return _not_found(
                f'No se encontró el expediente "{case_number}". Verifica el número e inténtalo de nuevo.'
            )
        client = resolve_client_by_id(directory, tenant_id, expediente.client_id)
        if not client:
            return _not_found(f'No se encontró el cliente asociado al expediente "{case_number}".')
    else:
        client = resolve_by_name(directory, tenant_id, client_name, DirectoryKind.CLIENT)
        if not client:
            return _not_found(
                f'No se encontró el cliente "{client_name}". Verifica el nombre o regístralo primero.'
            )

    record: dict[str, Any] = {
        "title": _first_present(data, TITLE_KEYS) or "Cita",
        "date": when,
        "client_name": client.name,
        "status": map_appointment_status(data.get("status") or data.get("estado")),
        "expediente_id": expediente.id if expediente else None,
        "expediente_title": expediente.title if expediente else None,
    }
    try:
        appointment = directory.create_appointment(record, tenant_id)
    except DirectoryError as exc:
        return _failed(exc)
    return _dispatched(action, "cita", appointment.model_dump(mode="json"))


ACTION_HANDLERS: dict[DirectiveAction, ActionHandler] = {
    DirectiveAction.CREATE_CLIENT: create_client,
    DirectiveAction.CREATE_EXPEDIENTE: create_expediente,
    DirectiveAction.AGENDAR_CITA: agendar_cita,
}


# ---------- helpers ----------


def map_appointment_status(value: str | None) -> AppointmentStatus:
    return APPOINTMENT_STATUS_MAP.get(normalize_name(value), DEFAULT_APPOINTMENT_STATUS)


def appointment_datetime_text(data: dict[str, str]) -> str | None:
    fecha = (data.get("fecha") or "").strip()
    hora = (data.get("hora") or "").strip()
    if fecha and hora:
        return f"{fecha} {hora}"
    return _first_present(data, COMBINED_DATE_KEYS)


def parse_timestamp(text: str) -> datetime | None:
    """
    Parse a user-supplied date, day-first unless it starts with a year.

    Text without a day and month (``"10:00"``) is rejected rather than read as
    today. A missing year falls back to the current one. Values without an
    offset are placed in ``settings.default_timezone``.
    """
    dayfirst = not _YEAR_FIRST.match(text)
    year = utcnow().year
    try:
        parsed = dateparser.parse(text, dayfirst=dayfirst, default=datetime(year, 1, 1))
        shifted = dateparser.parse(text, dayfirst=dayfirst, default=datetime(year, 2, 2))
    except (ValueError, OverflowError):
        return None
    if (parsed.month, parsed.day) != (shifted.month, shifted.day):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz.gettz(settings.default_timezone) or tz.UTC)
    return parsed


def _first_present(data: dict[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = (data.get(key) or "").strip()
        if value:
            return value
    return None


def _remap(data: dict[str, str], mapping: dict[str, str]) -> dict[str, str]:
    remapped = dict(data)
    for source, target in mapping.items():
        if source in remapped:
            value = remapped.pop(source)
            if not (remapped.get(target) or "").strip():
                remapped[target] = value
    return remapped


def _missing(action: DirectiveAction, label: str) -> ActionResult:
    return ActionResult(
        success=False,
        response=f"Falta información: indica {label} para {PURPOSES[action]}.",
        status_code=200,
        outcome=Outcome.MISSING_FIELD,
    )


def _invalid_date(text: str) -> ActionResult:
    return ActionResult(
        success=False,
        response=f'No pude interpretar la fecha "{text}". Usa el formato AAAA-MM-DD HH:MM.',
        status_code=400,
        outcome=Outcome.INVALID_FIELD,
    )


def _not_found(message: str) -> ActionResult:
    return ActionResult(success=False, response=message, status_code=400, outcome=Outcome.ENTITY_NOT_FOUND)


def _failed(exc: DirectoryError) -> ActionResult:
    return ActionResult(success=False, response=str(exc), status_code=400, outcome=Outcome.DISPATCH_FAILED)


def _dispatched(action: DirectiveAction, key: str, payload: dict[str, Any]) -> ActionResult:
    return ActionResult(
        success=True,
        response=CONFIRMATIONS[action],
        payload_key=key,
        payload=payload,
        outcome=Outcome.DISPATCHED,
    )
