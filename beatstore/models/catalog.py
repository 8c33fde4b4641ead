"""
Catalog models: beats, their license tiers, and sound kits.

The checkout and fulfillment paths only read these rows.
"""
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from beatstore.models.base import Base, TenantBaseModel, enum_column_type


class LicenseType(str, PyEnum):
    MP3 = "mp3"
    WAV = "wav"
    STEMS = "stems"
    EXCLUSIVE = "exclusive"


class Beat(Base, TenantBaseModel):
    __tablename__ = "beats"

    title = Column(String(255), nullable=False)
    bpm = Column(Integer, nullable=True)
    genre = Column(String(100), nullable=True)
    mood = Column(String(100), nullable=True)
    cover_image_path = Column(String(500), nullable=True)
    mp3_file_path = Column(String(500), nullable=True)
    wav_file_path = Column(String(500), nullable=True)
    stems_file_path = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    license_tiers = relationship("LicenseTier", back_populates="beat", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Beat {self.title}>"


class LicenseTier(Base, TenantBaseModel):
    __tablename__ = "license_tiers"

    beat_id = Column(
        UUID(as_uuid=True),
        ForeignKey("beats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    type = Column(
        enum_column_type(LicenseType, "license_type"),
        default=LicenseType.MP3,
        nullable=False,
    )
    price = Column(Numeric(10, 2), nullable=False)
    includes = Column(JSONB, default=list)
    license_pdf_path = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    beat = relationship("Beat", back_populates="license_tiers")

    def __repr__(self) -> str:
        return f"<LicenseTier {self.name} ({self.type.value}) {self.price}>"


class SoundKit(Base, TenantBaseModel):
    __tablename__ = "sound_kits"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    cover_image_path = Column(String(500), nullable=True)
    file_path = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<SoundKit {self.title} {self.price}>"
