from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String(128), nullable=True, unique=True, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Admin(Base):
    """Admin allow-list, keyed by phone. Independent of users."""
    __tablename__ = "admin"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    location_area = Column(String(255), nullable=True)
    city = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    rera = Column(String(255), nullable=True)
    status = Column(String(100), nullable=True)
    property_type = Column(String(100), nullable=True)
    # List/object columns hold JSON text
    configurations = Column(Text, nullable=True)
    blocks = Column(String(100), nullable=True)
    units = Column(String(100), nullable=True)
    floors = Column(String(100), nullable=True)
    land_area = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    videos = Column(Text, nullable=True)
    developer_name = Column(String(255), nullable=True)
    developer_logo = Column(Text, nullable=True)
    developer_description = Column(Text, nullable=True)
    highlights = Column(Text, nullable=True)
    amenities = Column(Text, nullable=True)
    gallery = Column(Text, nullable=True)
    thumbnail = Column(Text, nullable=True)
    brochure_url = Column(Text, nullable=True)
    contact_phone = Column(String(64), nullable=True)
    contact_email = Column(String(255), nullable=True)
    price_info = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class HomeEnquiry(Base):
    __tablename__ = "home_enquiries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    type = Column(String(100), nullable=True)
    bathroom_number = Column(String(50), nullable=True)
    kitchen_type = Column(String(100), nullable=True)
    material = Column(String(255), nullable=True)
    area = Column(String(100), nullable=True)
    theme = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")


class CustomEnquiry(Base):
    __tablename__ = "custom_enquiries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    type = Column(String(100), nullable=True)
    city = Column(String(255), nullable=True)
    area = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")


class KbEnquiry(Base):
    __tablename__ = "kb_enquiries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    type = Column(String(50), nullable=False)
    city = Column(String(255), nullable=True)
    area = Column(String(100), nullable=True)
    bathroom_type = Column(String(100), nullable=True)
    kitchen_type = Column(String(100), nullable=True)
    kitchen_theme = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")


class Testimonial(Base):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    review = Column(Text, nullable=False)
    customer_type = Column(String(100), nullable=True)
    customer_image = Column(Text, nullable=True)
    customer_phone = Column(String(64), nullable=True)
    rating = Column(Integer, nullable=True)
    service_type = Column(String(100), nullable=True, index=True)
    is_home = Column(Boolean, nullable=False, default=False)
    page = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
