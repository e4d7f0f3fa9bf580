from datetime import datetime

from sqlalchemy import JSON, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from degradscan.db.base import Base


class DegradationReports(Base):
    __tablename__ = "degradation_reports"

    substance_name: Mapped[str] = mapped_column(Text, primary_key=True)
    products: Mapped[list[dict]] = mapped_column(JSON, nullable=False)
    references: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    response_source: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
