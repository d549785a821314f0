import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trustprint.database.base import Base, DateTimeMixin


class Fingerprint(Base, DateTimeMixin):
    __tablename__ = "fingerprints"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    fingerprint_id: Mapped[str] = mapped_column(
        String(128), unique=True, index=True
    )
    last_seen_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    flagged: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    trust_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    ip_addresses: Mapped[list["FingerprintIpAddress"]] = relationship(
        back_populates="fingerprint",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    users: Mapped[list["FingerprintUser"]] = relationship(
        back_populates="fingerprint",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class FingerprintIpAddress(Base):
    __tablename__ = "fingerprint_ip_addresses"
    __table_args__ = (UniqueConstraint("fingerprint_pk", "ip_address"),)

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    fingerprint_pk: Mapped[int] = mapped_column(
        ForeignKey("fingerprints.id", ondelete="CASCADE"), index=True
    )
    ip_address: Mapped[str] = mapped_column(String(64))

    fingerprint: Mapped[Fingerprint] = relationship(back_populates="ip_addresses")


class FingerprintUser(Base):
    __tablename__ = "fingerprint_users"
    __table_args__ = (UniqueConstraint("fingerprint_pk", "user_id"),)

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    fingerprint_pk: Mapped[int] = mapped_column(
        ForeignKey("fingerprints.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(128), index=True)

    fingerprint: Mapped[Fingerprint] = relationship(back_populates="users")
