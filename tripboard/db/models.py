"""SQLAlchemy ORM models for itineraries, days, items, stays and flights."""

import datetime as dt
import uuid

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Place(Base):
    """Place table - rows owned by the place collaborator, read-only here."""

    __tablename__ = "place"
    __table_args__ = (Index("idx_place_project", "project_id"),)

    place_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)


class Itinerary(Base):
    """Itinerary table - one per project."""

    __tablename__ = "itinerary"
    __table_args__ = (UniqueConstraint("project_id", name="uq_itinerary_project"),)

    itinerary_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    days: Mapped[list["ItineraryDay"]] = relationship(
        "ItineraryDay", back_populates="itinerary", passive_deletes=True
    )
    accommodations: Mapped[list["Accommodation"]] = relationship(
        "Accommodation", back_populates="itinerary", passive_deletes=True
    )
    flights: Mapped[list["Flight"]] = relationship(
        "Flight", back_populates="itinerary", passive_deletes=True
    )


class ItineraryDay(Base):
    """Itinerary day table - dense day numbers 1..N per itinerary."""

    __tablename__ = "itinerary_day"
    __table_args__ = (
        UniqueConstraint("itinerary_id", "day_number", name="uq_day_itinerary_number"),
        Index("idx_day_itinerary_date", "itinerary_id", "date"),
    )

    day_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    itinerary_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("itinerary.itinerary_id", ondelete="CASCADE"), nullable=False
    )
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    # Relationships
    itinerary: Mapped["Itinerary"] = relationship("Itinerary", back_populates="days")
    items: Mapped[list["ItineraryItem"]] = relationship(
        "ItineraryItem", back_populates="day", passive_deletes=True
    )


class ItineraryItem(Base):
    """Itinerary item table - ordered entries within a day.

    No unique constraint on (day_id, order): shifting a day by +1 passes
    through transient duplicates inside the unit of work.
    """

    __tablename__ = "itinerary_item"
    __table_args__ = (
        Index("idx_item_day_order", "day_id", "order"),
        Index("idx_item_accommodation", "accommodation_id"),
    )

    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    day_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("itinerary_day.day_id", ondelete="CASCADE"), nullable=False
    )
    item_type: Mapped[str] = mapped_column(Text, nullable=False, default="place")
    place_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("place.place_id", ondelete="CASCADE"), nullable=True
    )
    accommodation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accommodation.accommodation_id", ondelete="CASCADE"), nullable=True
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    day: Mapped["ItineraryDay"] = relationship("ItineraryDay", back_populates="items")


class Accommodation(Base):
    """Accommodation table - lodging stays (check-in/check-out stored as naive UTC)."""

    __tablename__ = "accommodation"
    __table_args__ = (Index("idx_accommodation_itinerary", "itinerary_id", "check_in"),)

    accommodation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    itinerary_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("itinerary.itinerary_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    check_in: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    check_out: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    itinerary: Mapped["Itinerary"] = relationship("Itinerary", back_populates="accommodations")


class Flight(Base):
    """Flight table - shown separately from day ordering."""

    __tablename__ = "flight"
    __table_args__ = (Index("idx_flight_itinerary", "itinerary_id", "departure_at"),)

    flight_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    itinerary_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("itinerary.itinerary_id", ondelete="CASCADE"), nullable=False
    )
    departure_city: Mapped[str] = mapped_column(Text, nullable=False)
    arrival_city: Mapped[str] = mapped_column(Text, nullable=False)
    airline: Mapped[str | None] = mapped_column(Text, nullable=True)
    flight_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    departure_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    arrival_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    itinerary: Mapped["Itinerary"] = relationship("Itinerary", back_populates="flights")
