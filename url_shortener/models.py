from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Boolean, Integer, String, DateTime, ForeignKey
from datetime import datetime
from typing import Optional
from url_shortener.db import Base

class URL(Base):
    __tablename__ = "urls"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    shortcode: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    clicks: Mapped[list["Click"]] = relationship(
        "Click", back_populates="url", order_by="Click.id",
        cascade="all, delete-orphan", passive_deletes=True,
    )

class Click(Base):
    __tablename__ = "clicks"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    url_id: Mapped[int] = mapped_column(ForeignKey("urls.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    referrer: Mapped[str] = mapped_column(String(2048), default="direct", nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str] = mapped_column(String(512), default="Unknown", nullable=False)
    country: Mapped[str] = mapped_column(String(128), default="Unknown", nullable=False)
    region: Mapped[str] = mapped_column(String(128), default="Unknown", nullable=False)
    city: Mapped[str] = mapped_column(String(128), default="Unknown", nullable=False)
    url: Mapped[URL] = relationship("URL", back_populates="clicks")
