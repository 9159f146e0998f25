from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, SmallInteger, String, Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Brand(Base):
    __tablename__ = 'brands'
    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    logo_url = Column(String(500))
    country = Column(String(100))
    created_at = Column(DateTime, default=utcnow)
    # No cascade: a brand with phones must not be deleted
    phones = relationship("Phone", back_populates="brand", passive_deletes="all")


class Phone(Base):
    __tablename__ = 'phones'
    id = Column(Integer, primary_key=True)
    brand_id = Column(Integer, ForeignKey('brands.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    image_url = Column(String(500))
    price_min = Column(Integer)
    price_max = Column(Integer)
    release_date = Column(Date)

    display_size = Column(Float)
    display_type = Column(String(100))
    display_resolution = Column(String(100))
    display_refresh_rate = Column(Integer)
    display_protection = Column(String(150))

    chipset = Column(String(150))
    cpu = Column(String(255))
    gpu = Column(String(150))
    ram = Column(String(100))
    storage = Column(String(100))
    antutu_score = Column(Integer)

    camera_main = Column(String(255))
    camera_ultrawide = Column(String(255))
    camera_telephoto = Column(String(255))
    camera_front = Column(String(255))
    camera_video = Column(String(255))

    battery_capacity = Column(Integer)
    battery_charging = Column(String(150))
    battery_wireless = Column(String(150))

    network = Column(String(100))
    sim = Column(String(100))
    wifi = Column(String(150))
    bluetooth = Column(String(100))
    nfc = Column(Boolean, nullable=False, default=False)
    usb_type = Column(String(100))
    audio_jack = Column(Boolean, nullable=False, default=False)

    body_dimensions = Column(String(150))
    body_weight = Column(Integer)
    body_material = Column(String(255))
    body_protection = Column(String(100))

    fingerprint = Column(String(150))
    face_unlock = Column(Boolean, nullable=False, default=False)
    os = Column(String(100))
    ui = Column(String(100))

    shopee_link = Column(String(500))
    tokopedia_link = Column(String(500))
    is_featured = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    brand = relationship("Brand", back_populates="phones")
    reviews = relationship(
        "Review", back_populates="phone", cascade="all, delete-orphan", passive_deletes=True
    )


class Review(Base):
    __tablename__ = 'reviews'
    id = Column(Integer, primary_key=True)
    phone_id = Column(Integer, ForeignKey('phones.id', ondelete="CASCADE"), nullable=False, index=True)
    reviewer_name = Column(String(50), nullable=False, default="Anonim")
    rating = Column(SmallInteger, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    phone = relationship("Phone", back_populates="reviews")
