"""SQLAlchemy-backed job store."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import Any, Callable, TypeVar
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.concurrency import run_in_threadpool

from scribeline.domain.job_fsm import ensure_transition
from scribeline.errors import PersistenceError
from scribeline.repositories.base import JobRecord, JobStore, NewJob, check_update_fields
from scribeline.schemas.job import (
    JobStatus,
    RecognitionConfig,
    Segment,
    SourceType,
    TranslatedSegment,
    TranslationEntry,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")


class JobRow(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    source_type = Column(SQLEnum(SourceType), nullable=False)
    original_label = Column(String, nullable=False)
    audio_uri = Column(String, nullable=False)
    audio_file_name = Column(String, nullable=False)
    recognition_config = Column(JSON, nullable=False)
    status = Column(SQLEnum(JobStatus), nullable=False, default=JobStatus.QUEUED, index=True)
    file_size_bytes = Column(Integer, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    target_language = Column(String, nullable=True)
    transcript_text = Column(Text, nullable=True)
    segments = Column(JSON, nullable=False, default=list)
    detected_speaker_count = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class TranslationRow(Base):
    """One row per (job, language); the unique key enforces a single entry per language."""

    __tablename__ = "job_translations"
    __table_args__ = (UniqueConstraint("job_id", "language", name="uq_job_translation_language"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String, nullable=False)
    segments = Column(JSON, nullable=False)
    translated_at = Column(DateTime(timezone=True), nullable=False)


def build_engine(database_url: str, *, echo: bool = False):
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False, "timeout": 20}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            options["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **options)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class SqlJobStore(JobStore):
    """Relational store; sync sessions are pushed to the threadpool."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self._engine = build_engine(database_url, echo=echo)
        self._session_factory = sessionmaker(bind=self._engine, autocommit=False, autoflush=False, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    async def create(self, new_job: NewJob) -> JobRecord:
        def _create(session: Session) -> JobRecord:
            now = datetime.now(UTC)
            row = JobRow(
                id=str(uuid4()),
                owner_id=new_job.owner_id,
                source_type=new_job.source_type,
                original_label=new_job.original_label,
                audio_uri=new_job.audio_uri,
                audio_file_name=new_job.audio_file_name,
                recognition_config=new_job.recognition_config.model_dump(mode="json"),
                status=JobStatus.QUEUED,
                file_size_bytes=new_job.file_size_bytes,
                duration_seconds=new_job.duration_seconds,
                target_language=new_job.target_language,
                segments=[],
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return self._to_record(row, [])

        return await self._run(_create)

    async def get(self, job_id: str) -> JobRecord | None:
        def _get(session: Session) -> JobRecord | None:
            row = session.get(JobRow, job_id)
            return self._load(session, row) if row is not None else None

        return await self._run(_get)

    async def get_for_owner(self, owner_id: str, job_id: str) -> JobRecord | None:
        def _get(session: Session) -> JobRecord | None:
            row = session.get(JobRow, job_id)
            if row is None or row.owner_id != owner_id:
                return None
            return self._load(session, row)

        return await self._run(_get)

    async def list_for_owner(
        self,
        owner_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        def _list(session: Session) -> tuple[list[JobRecord], int]:
            query = select(JobRow).where(JobRow.owner_id == owner_id)
            if status is not None:
                query = query.where(JobRow.status == status)
            total = session.scalar(select(func.count()).select_from(query.subquery())) or 0
            rows = session.scalars(query.order_by(JobRow.created_at.desc()).offset(offset).limit(limit)).all()
            return [self._load(session, row) for row in rows], total

        return await self._run(_list)

    async def transition(
        self,
        job_id: str,
        new_status: JobStatus,
        *,
        retry: bool = False,
        **fields: Any,
    ) -> JobRecord:
        check_update_fields(fields)

        def _transition(session: Session) -> JobRecord:
            row = session.get(JobRow, job_id, with_for_update=True)
            if row is None:
                raise PersistenceError(f"Job {job_id} does not exist")
            ensure_transition(row.status, new_status, retry=retry)
            row.status = new_status
            for name, value in fields.items():
                if name == "segments":
                    value = [segment.model_dump(mode="json") for segment in value]
                setattr(row, name, value)
            row.updated_at = datetime.now(UTC)
            session.commit()
            return self._load(session, row)

        return await self._run(_transition)

    async def upsert_translation(self, job_id: str, entry: TranslationEntry) -> JobRecord:
        payload = [segment.model_dump(mode="json") for segment in entry.segments]

        def _upsert(session: Session) -> JobRecord:
            if session.get(JobRow, job_id) is None:
                raise PersistenceError(f"Job {job_id} does not exist")
            try:
                self._write_translation(session, job_id, entry, payload)
            except IntegrityError:
                # A concurrent insert for the same language won the race; overwrite it.
                session.rollback()
                self._write_translation(session, job_id, entry, payload)
            row = session.get(JobRow, job_id)
            row.updated_at = datetime.now(UTC)
            session.commit()
            return self._load(session, row)

        return await self._run(_upsert)

    async def import_record(self, record: JobRecord) -> JobRecord:
        def _import(session: Session) -> JobRecord:
            row = session.get(JobRow, record.id)
            if row is None:
                row = JobRow(id=record.id)
                session.add(row)
            row.owner_id = record.owner_id
            row.source_type = record.source_type
            row.original_label = record.original_label
            row.audio_uri = record.audio_uri
            row.audio_file_name = record.audio_file_name
            row.recognition_config = record.recognition_config.model_dump(mode="json")
            row.status = record.status
            row.file_size_bytes = record.file_size_bytes
            row.duration_seconds = record.duration_seconds
            row.target_language = record.target_language
            row.transcript_text = record.transcript_text
            row.segments = [segment.model_dump(mode="json") for segment in record.segments]
            row.detected_speaker_count = record.detected_speaker_count
            row.error_message = record.error_message
            row.created_at = record.created_at
            row.updated_at = record.updated_at
            session.flush()
            for entry in record.translations:
                payload = [segment.model_dump(mode="json") for segment in entry.segments]
                self._write_translation(session, record.id, entry, payload)
            session.commit()
            return self._load(session, session.get(JobRow, record.id))

        return await self._run(_import)

    @staticmethod
    def _write_translation(
        session: Session,
        job_id: str,
        entry: TranslationEntry,
        payload: list[dict[str, Any]],
    ) -> None:
        existing = session.scalar(
            select(TranslationRow).where(
                TranslationRow.job_id == job_id,
                TranslationRow.language == entry.language,
            )
        )
        if existing is not None:
            existing.segments = payload
            existing.translated_at = entry.translated_at
        else:
            session.add(
                TranslationRow(
                    job_id=job_id,
                    language=entry.language,
                    segments=payload,
                    translated_at=entry.translated_at,
                )
            )
        session.flush()

    async def _run(self, operation: Callable[[Session], T]) -> T:
        def _call() -> T:
            with self._session_factory() as session:
                try:
                    return operation(session)
                except SQLAlchemyError as exc:
                    session.rollback()
                    logger.error("store.write_failed reason=%s", type(exc).__name__)
                    raise PersistenceError(str(exc)) from exc

        return await run_in_threadpool(_call)

    def _load(self, session: Session, row: JobRow) -> JobRecord:
        translations = session.scalars(
            select(TranslationRow).where(TranslationRow.job_id == row.id).order_by(TranslationRow.id)
        ).all()
        return self._to_record(row, translations)

    @staticmethod
    def _to_record(row: JobRow, translations: list[TranslationRow]) -> JobRecord:
        return JobRecord(
            id=row.id,
            owner_id=row.owner_id,
            source_type=row.source_type,
            original_label=row.original_label,
            audio_uri=row.audio_uri,
            audio_file_name=row.audio_file_name,
            recognition_config=RecognitionConfig.model_validate(row.recognition_config),
            status=row.status,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
            file_size_bytes=row.file_size_bytes,
            duration_seconds=row.duration_seconds,
            target_language=row.target_language,
            transcript_text=row.transcript_text,
            segments=[Segment.model_validate(item) for item in (row.segments or [])],
            detected_speaker_count=row.detected_speaker_count,
            translations=[
                TranslationEntry(
                    language=item.language,
                    segments=[TranslatedSegment.model_validate(segment) for segment in item.segments],
                    translated_at=_as_utc(item.translated_at),
                )
                for item in translations
            ],
            error_message=row.error_message,
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
