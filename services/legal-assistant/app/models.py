from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.utils import utcnow


class ExpedienteOrigin(str, Enum):
    JUZGADOS = "Juzgados"
    OFICINAS = "Oficinas"
    TRIBUNALES = "Tribunales"
    NOTARIAS = "Notarías"
    OTROS = "Otros"


class ExpedienteStatus(str, Enum):
    ACTIVO = "Activo"
    PENDIENTE = "Pendiente"
    CERRADO = "Cerrado"


class AppointmentStatus(str, Enum):
    PROGRAMADA = "programada"
    COMPLETADA = "completada"
    CANCELADA = "cancelada"


class Client(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_client_tenant_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    phone: str
    tenant_id: str = Field(index=True)
    expedientes_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class Expediente(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("tenant_id", "numero_expediente", name="uq_expediente_tenant_numero"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    numero_expediente: Optional[str] = None
    tipo_proceso: Optional[str] = None
    origen: ExpedienteOrigin = Field(default=ExpedienteOrigin.OFICINAS)
    title: str
    client_id: int = Field(foreign_key="client.id")
    client_name: str
    status: ExpedienteStatus = Field(default=ExpedienteStatus.ACTIVO)
    tenant_id: str = Field(index=True)
    due_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    date: datetime
    expediente_id: Optional[int] = Field(default=None, foreign_key="expediente.id")
    expediente_title: Optional[str] = None
    client_name: str
    status: AppointmentStatus = Field(default=AppointmentStatus.PROGRAMADA)
    tenant_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)
