from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.portal.models import Base


class Application(Base):
    __tablename__ = "applications"

    # UUID generated before any file is written; stored files are named after it.
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    plan_type: Mapped[str] = mapped_column(String(32), nullable=False)  # FIBERBIZ_100 / FIBERBIZ_300 / AFFORDABOOST_500
    org_type: Mapped[str] = mapped_column(String(32), nullable=False)  # SOLE_PROP / PARTNERSHIP / CORP / COOP

    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trade_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    business_address: Mapped[str] = mapped_column(String(512), nullable=False)
    billing_address: Mapped[str] = mapped_column(String(512), nullable=False)
    business_ownership: Mapped[str] = mapped_column(String(64), nullable=False, default="Private")
    tax_profile: Mapped[str] = mapped_column(String(32), nullable=False, default="VAT_REGISTERED")
    company_tin: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    industry_type: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    # Free text as typed by the applicant (rendered verbatim on the BCIF)
    date_of_registration: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    employees_count: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    signatories: Mapped[list["Signatory"]] = relationship(
        "Signatory",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Attachment.id",
    )

    @property
    def primary_signatory(self) -> "Signatory | None":
        return self.signatories[0] if self.signatories else None


class Signatory(Base):
    __tablename__ = "signatories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    designation: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    id_type: Mapped[str] = mapped_column(String(128), nullable=False)
    id_number: Mapped[str] = mapped_column(String(128), nullable=False)

    signature_storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    application: Mapped[Application] = relationship("Application", back_populates="signatories", lazy="selectin")


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)

    doc_type: Mapped[str] = mapped_column(String(64), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False, default="application/octet-stream")
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    application: Mapped[Application] = relationship("Application", back_populates="attachments", lazy="selectin")
