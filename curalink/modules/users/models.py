import uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, ForeignKey, JSON, Integer, Boolean
from curalink.core.base import Base, TimestampedMixin

class Role:
    PATIENT = "PATIENT"
    RESEARCHER = "RESEARCHER"
    ADMIN = "ADMIN"
    ALL = (PATIENT, RESEARCHER, ADMIN)

class User(Base, TimestampedMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True)
    name: Mapped[str] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(16), index=True)  # PATIENT | RESEARCHER | ADMIN
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # at most one of these is set, matching the role
    patient_profile: Mapped["PatientProfile | None"] = relationship(back_populates="user", lazy="selectin", uselist=False)
    researcher_profile: Mapped["ResearcherProfile | None"] = relationship(back_populates="user", lazy="selectin", uselist=False)

    @property
    def available_for_meetings(self) -> bool:
        return bool(self.researcher_profile and self.researcher_profile.available_for_meetings)

class PatientProfile(Base, TimestampedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), unique=True)
    conditions: Mapped[list | None] = mapped_column(JSON, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(32), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(120), nullable=True)

    user: Mapped[User] = relationship(back_populates="patient_profile")

    @property
    def location(self) -> str | None:
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        return None

class ResearcherProfile(Base, TimestampedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), unique=True)
    institution: Mapped[str | None] = mapped_column(String(200), nullable=True)
    specialties: Mapped[list | None] = mapped_column(JSON, nullable=True)
    research_interests: Mapped[list | None] = mapped_column(JSON, nullable=True)
    available_for_meetings: Mapped[bool] = mapped_column(Boolean, default=False)
    orcid_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    user: Mapped[User] = relationship(back_populates="researcher_profile")
