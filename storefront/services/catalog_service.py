from __future__ import annotations

import secrets
import time

from flask import current_app
from sqlalchemy.orm import joinedload

from constants import (
    DEFAULT_CATEGORY,
    DEFAULT_MERCHANT_NAME,
    LISTING_SORTS,
    PRODUCT_PAYLOAD_FIELDS,
    SEARCH_SOURCE_FIELDS,
)
from helpers import coerce_field
from models import Product, User

from storefront.errors import NotFound, ValidationError
from storefront.services.search_indexer import apply_search_fields, compute_search_fields
from storefront.services.search_query import build_fuzzy_predicate
from storefront.services.search_text import LIKE_ESCAPE, contains_pattern


def merchant_to_dict(user: User | None):
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "shopName": user.shop_name}


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "productCode": product.product_code,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "imageUrl": product.image_url,
        "category": product.category,
        "stock": product.stock,
        "salesCount": product.sales_count,
        "searchKeywords": product.search_keywords,
        "merchant": product.merchant,
        "createdAt": product.created_at.isoformat() if product.created_at else None,
        "merchantInfo": merchant_to_dict(product.merchant_user),
    }


def generate_product_code() -> str:
    return f"P{int(time.time() * 1000)}{secrets.token_hex(4).upper()}"


def listing_order(sort_by=None, default="createdAt"):
    attr, direction = LISTING_SORTS.get(sort_by or default, LISTING_SORTS[default])
    column = getattr(Product, attr)
    return [column.desc() if direction == "desc" else column.asc(), Product.id.asc()]


def extract_payload(payload: dict) -> dict:
    values = {}
    for key, attr in PRODUCT_PAYLOAD_FIELDS.items():
        if key in payload:
            values[attr] = coerce_field(attr, payload[key])
    return values


class CatalogService:
    def __init__(self, session, app=None):
        self.session = session
        self.app = app or current_app

    def _query(self):
        return self.session.query(Product).options(joinedload(Product.merchant_user))

    def get_product(self, product_id: int) -> Product:
        product = self._query().filter(Product.id == product_id).first()
        if product is None:
            raise NotFound(f"Product {product_id} does not exist")
        return product

    def list_products(self, category=None, search=None, merchant=None, sort_by="createdAt"):
        query = self._query()
        if category:
            query = query.filter(Product.category == category)
        if merchant:
            query = query.filter(Product.merchant.ilike(contains_pattern(merchant), escape=LIKE_ESCAPE))
        if search and search.strip():
            query = query.filter(build_fuzzy_predicate(search))
        query = query.order_by(*listing_order(sort_by))
        return query.all()

    def list_by_category(self, category: str):
        return (
            self._query()
            .filter(Product.category == category)
            .order_by(*listing_order("salesCount"))
            .all()
        )

    def _validate_price(self, values: dict):
        if "price" not in values:
            return
        if values["price"] is None:
            raise ValidationError("Price must be a number")
        if values["price"] < 0:
            raise ValidationError("Price must not be negative")

    def _resolve_merchant(self, values: dict):
        merchant_id = values.get("merchant_id")
        if not merchant_id:
            return
        user = self.session.get(User, merchant_id)
        if user is None:
            raise ValidationError(f"Merchant {merchant_id} does not exist")
        values["merchant"] = user.display_name

    def create_product(self, payload: dict) -> Product:
        values = extract_payload(payload or {})
        if not values.get("name"):
            raise ValidationError("Product name is required")
        self._validate_price(values)
        values.setdefault("description", "")
        values["category"] = values.get("category") or DEFAULT_CATEGORY
        values["merchant"] = values.get("merchant") or DEFAULT_MERCHANT_NAME
        values["product_code"] = values.get("product_code") or generate_product_code()
        self._resolve_merchant(values)

        product = Product(**values)
        apply_search_fields(product, compute_search_fields(values))
        self.session.add(product)
        self.session.commit()
        self.app.logger.info("Product %s created (%s)", product.id, product.product_code)
        return product

    def update_product(self, product_id: int, payload: dict) -> Product:
        product = self.get_product(product_id)
        values = extract_payload(payload or {})
        if "name" in values and not values["name"]:
            raise ValidationError("Product name must not be empty")
        self._validate_price(values)
        self._resolve_merchant(values)
        for attr, value in values.items():
            setattr(product, attr, value)
        if any(field in values for field in SEARCH_SOURCE_FIELDS):
            apply_search_fields(product, compute_search_fields(values, existing=product))
        self.session.commit()
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} does not exist")
        self.session.delete(product)
        self.session.commit()
        self.app.logger.info("Product %s deleted", product_id)
