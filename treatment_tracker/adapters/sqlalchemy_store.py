"""
SQLAlchemy (asyncio) persistence gateway.

The (prescription_id, date) unique constraint is the last line of defence
against two concurrent submissions for the same day: the losing insert
fails with IntegrityError, which is reported as DuplicateAssessmentError.
"""

import datetime as dt
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload

from treatment_tracker.domain.models import DailyAssessment, PainEntry, PainLocation, Prescription
from treatment_tracker.services.clock import DEFAULT_TIMEZONE
from treatment_tracker.services.repository import DuplicateAssessmentError

logger = structlog.get_logger(__name__)

DAY_UNIQUE_CONSTRAINT = "uq_daily_assessment_prescription_date"


# Base class for all ORM models
class Base(DeclarativeBase):
    pass


class PrescriptionRecord(Base):
    __tablename__ = "prescriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(8), unique=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime)
    # Null until the course is activated
    activated_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)


class DailyAssessmentRecord(Base):
    __tablename__ = "daily_assessments"

    id: Mapped[int] = mapped_column(primary_key=True)
    prescription_id: Mapped[int] = mapped_column(ForeignKey("prescriptions.id"))
    date: Mapped[dt.date] = mapped_column(Date)
    week: Mapped[int] = mapped_column(Integer)
    pain_score: Mapped[int] = mapped_column(Integer)
    stress_score: Mapped[int] = mapped_column(Integer)
    function_score: Mapped[int] = mapped_column(Integer)

    pains: Mapped[list["AssessmentPainRecord"]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="AssessmentPainRecord.id",
    )

    __table_args__ = (
        # One assessment per prescription per day
        UniqueConstraint("prescription_id", "date", name=DAY_UNIQUE_CONSTRAINT),
        # Week range queries
        Index("ix_assessment_prescription_week_date", "prescription_id", "week", "date"),
    )


class AssessmentPainRecord(Base):
    __tablename__ = "assessment_pains"

    id: Mapped[int] = mapped_column(primary_key=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("daily_assessments.id", ondelete="CASCADE")
    )
    location: Mapped[str] = mapped_column(String(20))
    intensity: Mapped[int] = mapped_column(Integer)
    note: Mapped[str | None] = mapped_column(String, nullable=True)

    assessment: Mapped[DailyAssessmentRecord] = relationship(back_populates="pains")


def _is_day_conflict(error: IntegrityError) -> bool:
    """True when `error` is the one-assessment-per-day constraint and nothing else."""
    message = str(error.orig)
    if DAY_UNIQUE_CONSTRAINT in message:
        return True
    # SQLite names the columns instead of the constraint
    return (
        "UNIQUE constraint failed" in message
        and "daily_assessments.prescription_id" in message
        and "daily_assessments.date" in message
    )


def _to_prescription(record: PrescriptionRecord) -> Prescription:
    return Prescription(
        id=record.id,
        code=record.code,
        created_at=record.created_at,
        activated_date=record.activated_date,
    )


def _to_assessment(record: DailyAssessmentRecord) -> DailyAssessment:
    return DailyAssessment(
        id=record.id,
        prescription_id=record.prescription_id,
        date=record.date,
        week=record.week,
        pain_score=record.pain_score,
        stress_score=record.stress_score,
        function_score=record.function_score,
        pains=[
            PainEntry(location=PainLocation(p.location), intensity=p.intensity, note=p.note)
            for p in record.pains
        ],
    )


class SqlAlchemyAssessmentRepository:
    """Repository bound to one AsyncSession (one transaction)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.last_saved: DailyAssessment | None = None

    async def find_prescription_by_code(self, code: str) -> Prescription | None:
        record = await self._session.scalar(
            select(PrescriptionRecord).where(PrescriptionRecord.code == code)
        )
        return _to_prescription(record) if record is not None else None

    async def exists_assessment(self, prescription_id: int, day: dt.date) -> bool:
        found = await self._session.scalar(
            select(DailyAssessmentRecord.id).where(
                DailyAssessmentRecord.prescription_id == prescription_id,
                DailyAssessmentRecord.date == day,
            )
        )
        return found is not None

    async def save_assessment(self, assessment: DailyAssessment) -> int:
        record = DailyAssessmentRecord(
            prescription_id=assessment.prescription_id,
            date=assessment.date,
            week=assessment.week,
            pain_score=assessment.pain_score,
            stress_score=assessment.stress_score,
            function_score=assessment.function_score,
            pains=[
                AssessmentPainRecord(location=p.location.value, intensity=p.intensity, note=p.note)
                for p in assessment.pains
            ],
        )
        self._session.add(record)
        try:
            # Flush now so the id is known and a constraint violation surfaces here
            await self._session.flush()
        except IntegrityError as e:
            if not _is_day_conflict(e):
                raise
            raise DuplicateAssessmentError(assessment.prescription_id, assessment.date) from e
        self.last_saved = assessment
        return record.id

    async def find_assessments_in_week_range(
        self, prescription_id: int, start_week: int, end_week: int
    ) -> list[DailyAssessment]:
        stmt = (
            select(DailyAssessmentRecord)
            .options(selectinload(DailyAssessmentRecord.pains))
            .where(
                DailyAssessmentRecord.prescription_id == prescription_id,
                DailyAssessmentRecord.week.between(start_week, end_week),
            )
            .order_by(DailyAssessmentRecord.week, DailyAssessmentRecord.date)
        )
        result = await self._session.scalars(stmt)
        return [_to_assessment(record) for record in result]


class SqlAlchemyGateway:
    """Gateway over an async SQLAlchemy engine (SQLite via aiosqlite by default)."""

    def __init__(
        self, url: str, echo: bool = False, timezone: str | dt.tzinfo = DEFAULT_TIMEZONE
    ) -> None:
        # created_at is stored as naive wall-clock time in this zone
        self.zone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self.engine = create_async_engine(url, echo=echo)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)
        self.logger = logger.bind(component="sqlalchemy_gateway")

    async def create_schema(self) -> None:
        """Create all tables if they don't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logger.info("schema_created", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[SqlAlchemyAssessmentRepository]:
        """One transaction: commit on normal exit, roll back on any exception."""
        async with self._sessionmaker() as session:
            repo = SqlAlchemyAssessmentRepository(session)
            try:
                yield repo
            except BaseException:
                await session.rollback()
                raise
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if repo.last_saved is None or not _is_day_conflict(e):
                    raise
                # Databases with deferred constraint checks report the race here
                raise DuplicateAssessmentError(
                    repo.last_saved.prescription_id, repo.last_saved.date
                ) from e

    async def add_prescription(
        self, code: str, created_at: dt.datetime, activated_date: dt.date | None = None
    ) -> Prescription:
        async with self._sessionmaker() as session, session.begin():
            record = PrescriptionRecord(
                code=code, created_at=self._wall_clock(created_at), activated_date=activated_date
            )
            session.add(record)
            await session.flush()
            return _to_prescription(record)

    def _wall_clock(self, moment: dt.datetime) -> dt.datetime:
        if moment.tzinfo is None:
            return moment
        return moment.astimezone(self.zone).replace(tzinfo=None)
