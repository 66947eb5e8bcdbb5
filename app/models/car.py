"""Car and car ownership ORM models."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.auditable import AuditableMixin


class Car(AuditableMixin, Base):
    """Fleet vehicle managed by administrators."""

    __tablename__ = "cars"

    id: Mapped[int] = mapped_column(primary_key=True)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    vin: Mapped[str] = mapped_column(String(17), nullable=False, unique=True, index=True)

    owner_cars: Mapped[list["OwnerCar"]] = relationship(back_populates="car")


class OwnerCar(AuditableMixin, Base):
    """Assignment of a principal to a car with an ownership type."""

    __tablename__ = "owner_cars"
    __table_args__ = (UniqueConstraint("car_id", "owner_id", name="uq_owner_cars_car_owner"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    car_id: Mapped[int] = mapped_column(ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    ownership_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Owner")
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    car: Mapped[Car] = relationship(back_populates="owner_cars")
