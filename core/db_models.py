from sqlalchemy import Boolean, Column, Float, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from core.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False, default="USER")  # "USER" or "ADMIN"
    created_at = Column(Integer, nullable=False)

    reports = relationship("ReportModel", back_populates="author")


class ReportModel(Base):
    __tablename__ = "reports"

    id = Column(String, primary_key=True, index=True)
    picture = Column(Text, nullable=True)
    description = Column(Text, nullable=False, default="")
    severity = Column(String, nullable=True)   # LOW / MEDIUM / HIGH, null on legacy rows
    status = Column(String, nullable=False, default="SUBMITTED", index=True)
    latitude = Column(Float, nullable=True, index=True)
    longitude = Column(Float, nullable=True, index=True)
    address = Column(Text, nullable=True)
    location_json = Column(Text, nullable=True)  # GeoJSON point [lng, lat]
    author_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(Integer, index=True, nullable=False)  # ms
    updated_at = Column(Integer, nullable=False)

    author = relationship("UserModel", back_populates="reports")
    timeline = relationship("ReportTimelineModel", cascade="all, delete-orphan")


class ReportTimelineModel(Base):
    __tablename__ = "report_timeline"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String, ForeignKey("reports.id"), index=True, nullable=False)
    previous_status = Column(String, nullable=True)
    new_status = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(Integer, index=True, nullable=False)


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="REPORT_STATUS")
    related_id = Column(String, nullable=True)
    read = Column(Boolean, default=False)
    created_at = Column(Integer, index=True, nullable=False)


class UserBadgeModel(Base):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_type"),)

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    badge_type = Column(String, nullable=False)  # key of core.badges.CATEGORIES
    earned_at = Column(Integer, index=True, nullable=False)  # ms
