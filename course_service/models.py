from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from shared.database import Base


class CourseMapping(Base):
    __tablename__ = "course_mappings"
    __table_args__ = (
        UniqueConstraint(
            "home_course_code", "partner_university", "partner_course_code",
            name="uq_course_mapping",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    home_course_code: Mapped[str] = mapped_column(String(20), index=True)
    home_course_name: Mapped[str] = mapped_column(String(255), default="")

    partner_university: Mapped[str] = mapped_column(String(255), index=True)
    partner_country: Mapped[str] = mapped_column(String(100), index=True)
    partner_course_code: Mapped[str] = mapped_column(String(50))
    partner_course_name: Mapped[str] = mapped_column(String(255), default="")

    ects: Mapped[float] = mapped_column(Numeric(4, 1, asdecimal=False))
    semester: Mapped[str | None] = mapped_column(String(50), nullable=True)  # e.g. "Autumn"

    verified: Mapped[bool] = mapped_column(Boolean, default=False)  # added or checked by an admin
    approved: Mapped[bool] = mapped_column(Boolean, default=False, index=True)  # publicly visible

    wiki_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, onupdate=func.now())

    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)  # submitter


class HomeCourse(Base):
    __tablename__ = "home_courses"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    credits: Mapped[float | None] = mapped_column(Numeric(4, 1, asdecimal=False), nullable=True)
