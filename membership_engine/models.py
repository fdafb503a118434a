import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from membership_engine.core.class_names import PERSONAL_SENTINEL
from membership_engine.core.roles import STUDENT_TOKEN
from membership_engine.core.time_provider import utc_naive_now
from membership_engine.db import Base


def new_document_id() -> str:
    return uuid.uuid4().hex


class CascadeStatus(str, Enum):
    RUNNING = 'running'
    PARTIAL = 'partial'
    COMPLETED = 'completed'


class Center(Base):
    __tablename__ = 'centers'

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    name: Mapped[str] = mapped_column(String(180))
    code: Mapped[str] = mapped_column(String(7), index=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    image_url: Mapped[str] = mapped_column(Text, default='')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_naive_now, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    classes: Mapped[list['ClassDefinition']] = relationship(
        'ClassDefinition',
        back_populates='center',
        order_by='ClassDefinition.position',
        cascade='all, delete-orphan',
    )

    __mapper_args__ = {'version_id_col': version}


class ClassDefinition(Base):
    __tablename__ = 'class_definitions'
    __table_args__ = (
        UniqueConstraint('center_id', 'name_key', name='uq_class_definitions_center_name_key'),
        Index('ix_class_definitions_center_position', 'center_id', 'position'),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    center_id: Mapped[str] = mapped_column(ForeignKey('centers.id'), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    name: Mapped[str] = mapped_column(String(120))
    name_key: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default='')
    image_url: Mapped[str] = mapped_column(Text, default='')
    chat_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    schedule_ref: Mapped[str] = mapped_column(Text, default='')  # opaque to this service
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_naive_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    center: Mapped[Center] = relationship('Center', back_populates='classes')

    __mapper_args__ = {'version_id_col': version}


class User(Base):
    __tablename__ = 'users'
    __table_args__ = (
        Index('ix_users_org_course_class', 'organization_id', 'course', 'class_name'),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    name: Mapped[str] = mapped_column(String(180), default='')
    email: Mapped[str] = mapped_column(String(255), default='', index=True)
    role: Mapped[str] = mapped_column(String(160), default=STUDENT_TOKEN, index=True)
    # Denormalized copies of the owning center; no foreign key on purpose.
    organization_id: Mapped[str] = mapped_column(String(32), default='', index=True)
    center: Mapped[str] = mapped_column(String(20), default=PERSONAL_SENTINEL, index=True)
    course: Mapped[str] = mapped_column(String(40), default=PERSONAL_SENTINEL)
    class_name: Mapped[str] = mapped_column(String(120), default=PERSONAL_SENTINEL)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    trophies: Mapped[int] = mapped_column(Integer, default=0)
    streak: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_naive_now)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}


class CascadeRun(Base):
    __tablename__ = 'cascade_runs'
    __table_args__ = (
        Index('ix_cascade_runs_status_created', 'status', 'created_at'),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    operation: Mapped[str] = mapped_column(String(40), index=True)
    center_id: Mapped[str] = mapped_column(String(32), index=True)
    params_json: Mapped[str] = mapped_column(Text, default='{}')
    status: Mapped[str] = mapped_column(String(20), default=CascadeStatus.RUNNING.value, index=True)
    batches_total: Mapped[int] = mapped_column(Integer, default=0)
    batches_committed: Mapped[int] = mapped_column(Integer, default=0)
    writes_committed: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str] = mapped_column(Text, default='')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_naive_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_naive_now, onupdate=utc_naive_now)
