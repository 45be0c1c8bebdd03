"""
Map free-text references from a directive to at most one persisted entity.

Matching is exact after :func:`normalize_name`; there is no ranking or partial
matching, so a typo resolves to nothing rather than to the wrong client.
"""

from enum import Enum

import structlog

from app.directives.normalize import normalize_name
from app.directory import Directory
from app.models import Client, Expediente

logger = structlog.get_logger("entity_resolver")


class DirectoryKind(str, Enum):
    CLIENT = "client"
    EXPEDIENTE = "expediente"


def _display_name(entity: Client | Expediente) -> str:
    if isinstance(entity, Client):
        return entity.name
    return entity.title


def resolve_by_name(
    directory: Directory, tenant_id: str, name: str | None, kind: DirectoryKind
) -> Client | Expediente | None:
    wanted = normalize_name(name)
    if not wanted:
        return None
    if kind == DirectoryKind.CLIENT:
        candidates: list[Client] | list[Expediente] = directory.list_clients(tenant_id)
    else:
        candidates = directory.list_expedientes(tenant_id)

    match = next((c for c in candidates if normalize_name(_display_name(c)) == wanted), None)
    logger.info(
        "entity_resolved" if match else "entity_not_found",
        kind=kind.value,
        candidates=len(candidates),
        entity_id=match.id if match else None,
    )
    return match


def resolve_case_by_number(directory: Directory, tenant_id: str, numero: str | None) -> Expediente | None:
    numero = (numero or "").strip()
    if not numero:
        return None
    return directory.find_expediente_by_number(tenant_id, numero)


def resolve_client_by_id(directory: Directory, tenant_id: str, client_id: int | str | None) -> Client | None:
    if client_id is None:
        return None
    return directory.get_client(tenant_id, client_id)
