from __future__ import annotations

import math
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.orm import joinedload

from constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SUGGESTION_LIMIT,
    MAX_PAGE_SIZE,
    MAX_SUGGESTION_LIMIT,
)
from helpers import parse_float, parse_positive_int
from models import Product

from storefront.errors import EmptyQuery
from storefront.services.catalog_service import listing_order, product_to_dict
from storefront.services.search_query import (
    NATIVE_POLICY,
    MatchStrategy,
    ScoringPolicy,
    SearchPipeline,
    SortMode,
    build_fulltext_statement,
    build_fuzzy_predicate,
    build_suggestion_statement,
    resolve_policy,
)
from storefront.services.search_text import highlight_match


@dataclass
class SearchRequest:
    query: str
    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    sort: SortMode = SortMode.RELEVANCE
    strategy: MatchStrategy = MatchStrategy.MULTI
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    policy: ScoringPolicy = field(default=NATIVE_POLICY)

    @classmethod
    def from_args(cls, args, config=None, strategy=None) -> "SearchRequest":
        config = config or {}
        query = (args.get("q") or "").strip()
        if not query:
            raise EmptyQuery()
        default_limit = config.get("SEARCH_DEFAULT_LIMIT", DEFAULT_PAGE_SIZE)
        max_limit = config.get("SEARCH_MAX_LIMIT", MAX_PAGE_SIZE)
        default_policy = resolve_policy(config.get("SEARCH_SCORING_POLICY"))
        return cls(
            query=query,
            category=(args.get("category") or "").strip() or None,
            min_price=parse_float(args.get("minPrice")),
            max_price=parse_float(args.get("maxPrice")),
            sort=SortMode.parse(args.get("sortBy")),
            strategy=MatchStrategy.parse(strategy or args.get("strategy")),
            page=parse_positive_int(args.get("page"), 1),
            limit=parse_positive_int(args.get("limit"), default_limit, max_limit),
            policy=resolve_policy(args.get("scoring"), default_policy),
        )


def serialize_search_row(row, query: str) -> dict:
    merchant = None
    if row["merchant_user_id"] is not None:
        merchant = {
            "id": row["merchant_user_id"],
            "name": row["merchant_user_name"],
            "shopName": row["merchant_shop_name"],
        }
    created_at = row["created_at"]
    return {
        "id": row["id"],
        "productCode": row["product_code"],
        "name": row["name"],
        "description": row["description"],
        "price": row["price"],
        "imageUrl": row["image_url"],
        "category": row["category"],
        "stock": row["stock"],
        "salesCount": row["sales_count"],
        "merchant": row["merchant"],
        "createdAt": created_at.isoformat() if created_at else None,
        "relevanceScore": round(float(row["relevance_score"] or 0), 4),
        "nameHighlighted": highlight_match(row["name"], query),
        "descriptionHighlighted": highlight_match(row["description"], query),
        "merchantInfo": merchant,
    }


class ProductSearchService:
    def __init__(self, session, app=None):
        self.session = session
        self.app = app or current_app

    def basic_search(self, query: str | None, sort_by: str | None = None) -> list[Product]:
        text = (query or "").strip()
        if not text:
            raise EmptyQuery()
        return (
            self.session.query(Product)
            .options(joinedload(Product.merchant_user))
            .filter(build_fuzzy_predicate(text))
            .order_by(*listing_order(sort_by, default="salesCount"))
            .all()
        )

    def search(self, request: SearchRequest) -> dict:
        pipeline = (
            SearchPipeline(request.query, request.strategy, request.policy)
            .match(request.category, request.min_price, request.max_price)
            .sort(request.sort)
            .paginate(request.page, request.limit)
        )
        rows = self.session.execute(pipeline.build()).mappings().all()
        total = self.session.execute(pipeline.count_statement()).scalar() or 0
        return {
            "items": [serialize_search_row(row, request.query) for row in rows],
            "pagination": {
                "total": total,
                "page": request.page,
                "limit": request.limit,
                "totalPages": math.ceil(total / request.limit) if request.limit else 0,
            },
            "query": request.query,
            "meta": {
                "strategy": request.strategy.value,
                "sortBy": request.sort.value,
                "scoring": request.policy.name,
                "scoringVersion": request.policy.version,
            },
        }

    def search_from_args(self, args, strategy=None) -> dict:
        request = SearchRequest.from_args(args, self.app.config, strategy=strategy)
        requested = (args.get("strategy") or "").strip().lower()
        if strategy is None and requested and requested != request.strategy.value:
            self.app.logger.warning(
                "Unknown search strategy %r, using %s", requested, request.strategy.value
            )
        return self.search(request)

    def fulltext_search(self, query: str | None, limit=None) -> dict:
        text = (query or "").strip()
        if not text:
            raise EmptyQuery()
        default_limit = self.app.config.get("SEARCH_DEFAULT_LIMIT", DEFAULT_PAGE_SIZE)
        max_limit = self.app.config.get("SEARCH_MAX_LIMIT", MAX_PAGE_SIZE)
        limit = parse_positive_int(limit, default_limit, max_limit)
        rows = self.session.execute(build_fulltext_statement(text, limit)).all()
        items = []
        for product, text_score in rows:
            item = product_to_dict(product)
            item["textScore"] = float(text_score or 0)
            items.append(item)
        return {"items": items, "total": len(items), "searchMethod": "fulltext", "query": text}

    def suggest(self, query: str | None, limit=None, position_aware: bool = True) -> dict:
        text = query or ""
        if len(text.strip()) < 1:
            return {"suggestions": [], "query": text}
        default_limit = self.app.config.get("SEARCH_SUGGESTION_LIMIT", DEFAULT_SUGGESTION_LIMIT)
        limit = parse_positive_int(limit, default_limit, MAX_SUGGESTION_LIMIT)
        statement = build_suggestion_statement(text.strip(), limit, position_aware=position_aware)
        rows = self.session.execute(statement).mappings().all()
        return {
            "suggestions": [
                {"text": row["text"], "category": row["category"], "count": row["item_count"]}
                for row in rows
            ],
            "query": text,
        }
