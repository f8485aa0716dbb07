from __future__ import annotations

from flask import current_app

from constants import DEFAULT_REINDEX_BATCH_SIZE, SEARCH_SOURCE_FIELDS
from models import Product

from storefront.errors import NotFound
from storefront.services.search_text import (
    ngrams,
    search_tokens,
    transliterate,
    transliteration_initials,
)


SEARCH_FIELDS = (
    "name_ngrams",
    "name_phonetic",
    "name_phonetic_initials",
    "search_tokens",
)


def _source_value(source, field):
    if source is None:
        return None
    if isinstance(source, dict):
        return source.get(field)
    return getattr(source, field, None)


def merge_search_sources(changes, existing=None) -> dict:
    """New value when ``changes`` carries the field, else the stored one."""
    merged = {}
    for field in SEARCH_SOURCE_FIELDS:
        value = _source_value(changes, field)
        if value is None:
            value = _source_value(existing, field)
        merged[field] = "" if value is None else str(value)
    return merged


def compute_search_fields(item, existing=None) -> dict:
    sources = merge_search_sources(item, existing)
    name = sources["name"]
    combined = " ".join(
        sources[field].strip() for field in SEARCH_SOURCE_FIELDS if sources[field].strip()
    )
    return {
        "name_ngrams": " ".join(sorted(ngrams(name, 2))),
        "name_phonetic": transliterate(name),
        "name_phonetic_initials": transliteration_initials(name),
        "search_tokens": search_tokens(combined),
    }


def apply_search_fields(product: Product, fields: dict) -> bool:
    changed = False
    for field in SEARCH_FIELDS:
        value = fields[field]
        if getattr(product, field) != value:
            setattr(product, field, value)
            changed = True
    return changed


class SearchIndexer:
    def __init__(self, session, app=None):
        self.session = session
        self.app = app or current_app

    def reindex_product(self, product_id: int) -> dict:
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} does not exist")
        fields = compute_search_fields(product)
        apply_search_fields(product, fields)
        self.session.commit()
        self.app.logger.info("Search data refreshed for product %s", product_id)
        return fields

    def rebuild_all(self, batch_size: int | None = None, progress=None) -> int:
        """Recompute every product's derived fields, committing once per batch.

        Not transactional as a whole: a failure leaves earlier batches
        committed, and rerunning is safe.
        """
        batch_size = batch_size or self.app.config.get(
            "SEARCH_REINDEX_BATCH_SIZE", DEFAULT_REINDEX_BATCH_SIZE
        )
        updated = 0
        last_id = 0
        while True:
            batch = (
                self.session.query(Product)
                .filter(Product.id > last_id)
                .order_by(Product.id)
                .limit(batch_size)
                .all()
            )
            if not batch:
                break
            for product in batch:
                apply_search_fields(product, compute_search_fields(product))
                updated += 1
            self.session.commit()
            last_id = batch[-1].id
            if progress is not None:
                progress(updated, last_id)
        self.app.logger.info("Search index rebuilt for %s products", updated)
        return updated
