from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from flask_login import UserMixin

from constants import DEFAULT_CATEGORY, DEFAULT_MERCHANT_NAME, DEFAULT_PRODUCT_IMAGE


Base = declarative_base()


class User(UserMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    email = Column(String(255), unique=True)
    role = Column(String(32), default="customer")
    shop_name = Column(String(255))
    shop_description = Column(Text)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    products = relationship("Product", back_populates="merchant_user")

    @property
    def display_name(self):
        return self.shop_name or self.name


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    product_code = Column(String(64), unique=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, default="")
    price = Column(Float, default=0.0, index=True)
    image_url = Column(String(255), default=DEFAULT_PRODUCT_IMAGE)
    category = Column(String(128), default=DEFAULT_CATEGORY, index=True)
    stock = Column(Integer, default=0)
    sales_count = Column(Integer, default=0, index=True)
    search_keywords = Column(Text, default="")
    merchant = Column(String(255), default=DEFAULT_MERCHANT_NAME)
    merchant_id = Column(Integer, ForeignKey("users.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Derived by storefront.services.search_indexer; never edited directly.
    name_ngrams = Column(Text, default="")
    name_phonetic = Column(Text, default="", index=True)
    name_phonetic_initials = Column(String(255), default="", index=True)
    search_tokens = Column(Text, default="")

    merchant_user = relationship("User", back_populates="products")
