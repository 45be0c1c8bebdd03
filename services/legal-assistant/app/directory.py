"""Tenant-scoped create/find operations over clients, case files and appointments."""

from typing import Any

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.models import Appointment, Client, Expediente

logger = structlog.get_logger("directory")


class DirectoryError(Exception):
    """A create operation was rejected; the message is safe to show to the user."""


class Directory:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ---------- find ----------

    def list_clients(self, tenant_id: str) -> list[Client]:
        return list(self._session.exec(select(Client).where(Client.tenant_id == tenant_id)).all())

    def list_expedientes(self, tenant_id: str) -> list[Expediente]:
        return list(
            self._session.exec(select(Expediente).where(Expediente.tenant_id == tenant_id)).all()
        )

    def get_client(self, tenant_id: str, client_id: int | str) -> Client | None:
        try:
            key = int(client_id)
        except (TypeError, ValueError):
            return None
        return self._session.exec(
            select(Client).where(Client.id == key, Client.tenant_id == tenant_id)
        ).first()

    def find_expediente_by_number(self, tenant_id: str, numero: str) -> Expediente | None:
        return self._session.exec(
            select(Expediente).where(
                Expediente.numero_expediente == numero,
                Expediente.tenant_id == tenant_id,
            )
        ).first()

    # ---------- create ----------

    def create_client(self, data: dict[str, Any], tenant_id: str) -> Client:
        email = (data.get("email") or "").strip().lower()
        existing = self._session.exec(
            select(Client).where(Client.email == email, Client.tenant_id == tenant_id)
        ).first()
        if existing:
            raise DirectoryError("El cliente ya existe")

        client = Client(
            name=data["name"].strip(),
            email=email,
            phone=data["phone"].strip(),
            tenant_id=tenant_id,
            expedientes_count=0,
        )
        self._save(client, duplicate_message="El cliente ya existe", failure_message="Error al crear cliente")
        logger.info("client_created", client_id=client.id)
        return client

    def create_expediente(self, data: dict[str, Any], tenant_id: str) -> Expediente:
        numero = data.get("numero_expediente")
        if numero and self.find_expediente_by_number(tenant_id, numero):
            raise DirectoryError("El expediente ya existe")

        client = self.get_client(tenant_id, data["client_id"])
        if not client:
            raise DirectoryError("Cliente no encontrado")

        expediente = Expediente(
            numero_expediente=numero,
            tipo_proceso=data.get("tipo_proceso"),
            origen=data["origen"],
            title=data["title"],
            client_id=client.id,
            client_name=data.get("client_name") or client.name,
            status=data["status"],
            tenant_id=tenant_id,
            due_date=data.get("due_date"),
        )
        bump_count = (
            update(Client)
            .where(Client.id == client.id, Client.tenant_id == tenant_id)
            .values(expedientes_count=Client.expedientes_count + 1)
        )
        self._save(
            expediente,
            statements=(bump_count,),
            duplicate_message="El expediente ya existe",
            failure_message="Error al crear expediente",
        )
        logger.info("expediente_created", expediente_id=expediente.id, client_id=client.id)
        return expediente

    def create_appointment(self, data: dict[str, Any], tenant_id: str) -> Appointment:
        appointment = Appointment(
            title=data.get("title") or "Cita",
            date=data["date"],
            expediente_id=data.get("expediente_id"),
            expediente_title=data.get("expediente_title"),
            client_name=data["client_name"],
            status=data["status"],
            tenant_id=tenant_id,
        )
        self._save(appointment, duplicate_message="La cita ya existe", failure_message="Error al crear cita")
        logger.info("appointment_created", appointment_id=appointment.id)
        return appointment

    def _save(
        self,
        row: Any,
        duplicate_message: str,
        failure_message: str,
        statements: tuple[Any, ...] = (),
    ) -> None:
        self._session.add(row)
        try:
            for statement in statements:
                self._session.execute(statement)
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            logger.warning("directory_integrity_error", table=type(row).__name__, error=str(exc.orig))
            raise DirectoryError(duplicate_message) from exc
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("directory_write_failed", table=type(row).__name__)
            raise DirectoryError(failure_message) from exc
        self._session.refresh(row)
