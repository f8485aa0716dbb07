"""SQL statement builders for product search.

Every search request is answered by statements generated here and executed by
the catalog database; there is no separate index. Two shapes exist:

* a plain predicate (:func:`build_fuzzy_predicate`) for listing and basic
  search, favouring recall;
* a staged ranking statement (:class:`SearchPipeline`) that filters, scores,
  sorts, paginates, joins the merchant and projects output columns, plus a
  matching count statement for pagination totals.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sqlalchemy import and_, case, func, or_, select, true

from models import Product, User
from storefront.services.search_text import (
    LIKE_ESCAPE,
    contains_pattern,
    is_alphabetic,
    prefix_pattern,
    query_bigrams,
    suffix_pattern,
    wildcard_pattern,
)


NOT_FOUND_POSITION = 1_000_000


class MatchStrategy(str, enum.Enum):
    EXACT = "exact"
    WILDCARD = "wildcard"
    NGRAM = "ngram"
    MULTI = "multi"

    @classmethod
    def parse(cls, value, default: "MatchStrategy | None" = None) -> "MatchStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return default or cls.MULTI


class SortMode(str, enum.Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    SALES = "sales"
    NEWEST = "newest"

    @classmethod
    def parse(cls, value) -> "SortMode":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip()
        return SORT_ALIASES.get(key, SORT_ALIASES.get(key.lower(), cls.RELEVANCE))


SORT_ALIASES = {
    "relevance": SortMode.RELEVANCE,
    "price": SortMode.PRICE_ASC,
    "price-asc": SortMode.PRICE_ASC,
    "price_asc": SortMode.PRICE_ASC,
    "priceAsc": SortMode.PRICE_ASC,
    "price-desc": SortMode.PRICE_DESC,
    "price_desc": SortMode.PRICE_DESC,
    "priceDesc": SortMode.PRICE_DESC,
    "sales": SortMode.SALES,
    "salesCount": SortMode.SALES,
    "newest": SortMode.NEWEST,
    "createdAt": SortMode.NEWEST,
}


@dataclass(frozen=True)
class ScoringPolicy:
    """Relative weights for the relevance score.

    Name tiers are exclusive (the first matching tier wins); every other term
    is added independently. The numbers are empirically tuned and only mean
    something relative to each other inside one result set.
    """

    name: str
    version: str
    name_exact: float
    name_prefix: float
    name_suffix: float
    name_contains: float
    category: float
    description: float
    keywords: float
    phonetic: float
    phonetic_initials: float
    ngram: float
    sales_coefficient: float
    sales_cap: float
    stock_penalty: float
    max_score: float | None = None


NATIVE_POLICY = ScoringPolicy(
    name="native",
    version="2",
    name_exact=100,
    name_prefix=80,
    name_suffix=70,
    name_contains=60,
    category=20,
    description=10,
    keywords=15,
    phonetic=20,
    phonetic_initials=15,
    ngram=0,
    sales_coefficient=0.01,
    sales_cap=20,
    stock_penalty=-30,
)

BASIC_POLICY = ScoringPolicy(
    name="basic",
    version="1",
    name_exact=50,
    name_prefix=30,
    name_suffix=30,
    name_contains=30,
    category=15,
    description=10,
    keywords=5,
    phonetic=20,
    phonetic_initials=15,
    ngram=10,
    sales_coefficient=0.01,
    sales_cap=10,
    stock_penalty=0,
    max_score=100,
)

SCORING_POLICIES = {policy.name: policy for policy in (NATIVE_POLICY, BASIC_POLICY)}


def resolve_policy(value, default: ScoringPolicy = NATIVE_POLICY) -> ScoringPolicy:
    if isinstance(value, ScoringPolicy):
        return value
    return SCORING_POLICIES.get(str(value or "").strip().lower(), default)


def _lowered(column):
    return func.lower(func.coalesce(column, ""))


def _compact(column):
    return func.replace(func.coalesce(column, ""), " ", "")


def _like(expression, pattern):
    return expression.like(pattern, escape=LIKE_ESCAPE)


def _contains(column, value: str):
    return _like(_lowered(column), contains_pattern(value.lower()))


def _phonetic_conditions(value: str) -> list:
    lowered = value.lower()
    return [
        _like(_compact(Product.name_phonetic), contains_pattern(lowered)),
        _like(func.coalesce(Product.name_phonetic_initials, ""), contains_pattern(lowered)),
    ]


def build_fuzzy_predicate(query: str | None):
    """Recall-oriented OR across raw, n-gram, phonetic and token fields."""
    text = (query or "").strip()
    if not text:
        return true()
    conditions = [
        _contains(Product.name, text),
        _contains(Product.description, text),
        _contains(Product.category, text),
        _contains(Product.search_keywords, text),
        _contains(Product.name_ngrams, text),
    ]
    if is_alphabetic(text):
        conditions.append(_contains(Product.name_phonetic, text))
        conditions.append(_contains(Product.name_phonetic_initials, text))
    conditions.append(_contains(Product.search_tokens, text))
    return or_(*conditions)


def build_exact_match(query: str):
    return or_(
        _contains(Product.name, query),
        _contains(Product.description, query),
        _contains(Product.category, query),
        _contains(Product.search_keywords, query),
    )


def build_wildcard_match(query: str):
    pattern = wildcard_pattern(query.lower())
    return or_(
        _like(_lowered(Product.name), pattern),
        _like(_lowered(Product.description), pattern),
    )


def build_ngram_match(query: str, n: int = 2):
    """All n-grams of the query must appear in the name."""
    if len(query) < n:
        return _contains(Product.name, query)
    grams = []
    for idx in range(len(query) - n + 1):
        gram = query[idx : idx + n]
        if gram not in grams:
            grams.append(gram)
    return and_(*[_contains(Product.name, gram) for gram in grams])


def build_multi_match(query: str):
    lowered = query.lower()
    name = _lowered(Product.name)
    conditions = [
        _contains(Product.name, query),
        _contains(Product.description, query),
        _contains(Product.category, query),
        _like(name, wildcard_pattern(lowered)),
        _like(name, prefix_pattern(lowered)),
        _like(name, suffix_pattern(lowered)),
    ]
    if len(query) >= 2:
        conditions.extend(_contains(Product.name, gram) for gram in query_bigrams(query))
    if is_alphabetic(query):
        conditions.extend(_phonetic_conditions(query))
    return or_(*conditions)


STRATEGY_BUILDERS = {
    MatchStrategy.EXACT: build_exact_match,
    MatchStrategy.WILDCARD: build_wildcard_match,
    MatchStrategy.NGRAM: build_ngram_match,
    MatchStrategy.MULTI: build_multi_match,
}


def build_strategy_match(query: str, strategy=MatchStrategy.MULTI):
    return STRATEGY_BUILDERS[MatchStrategy.parse(strategy)](query)


def build_filter_clause(
    query: str,
    strategy=MatchStrategy.MULTI,
    category: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
):
    clauses = [build_strategy_match(query, strategy)]
    if category:
        clauses.append(Product.category == category)
    if min_price is not None:
        clauses.append(Product.price >= min_price)
    if max_price is not None:
        clauses.append(Product.price <= max_price)
    return and_(*clauses)


def _bonus(condition, weight: float):
    return case((condition, weight), else_=0)


def build_score_expression(query: str, policy: ScoringPolicy = NATIVE_POLICY):
    lowered = query.lower()
    name = _lowered(Product.name)
    name_score = case(
        (name == lowered, policy.name_exact),
        (_like(name, prefix_pattern(lowered)), policy.name_prefix),
        (_like(name, suffix_pattern(lowered)), policy.name_suffix),
        (_like(name, contains_pattern(lowered)), policy.name_contains),
        else_=0,
    )
    sales = func.coalesce(Product.sales_count, 0) * policy.sales_coefficient
    terms = [
        name_score,
        _bonus(_contains(Product.category, query), policy.category),
        _bonus(_contains(Product.description, query), policy.description),
        _bonus(_contains(Product.search_keywords, query), policy.keywords),
        _bonus(_like(_compact(Product.name_phonetic), contains_pattern(lowered)), policy.phonetic),
        _bonus(
            _like(func.coalesce(Product.name_phonetic_initials, ""), contains_pattern(lowered)),
            policy.phonetic_initials,
        ),
        case((sales > policy.sales_cap, policy.sales_cap), else_=sales),
    ]
    if policy.ngram:
        terms.append(_bonus(_contains(Product.name_ngrams, query), policy.ngram))
    if policy.stock_penalty:
        terms.append(_bonus(func.coalesce(Product.stock, 0) <= 0, policy.stock_penalty))
    total = terms[0]
    for term in terms[1:]:
        total = total + term
    if policy.max_score is not None:
        total = case((total > policy.max_score, policy.max_score), else_=total)
    return total


PROJECTED_COLUMNS = (
    Product.id,
    Product.product_code,
    Product.name,
    Product.description,
    Product.price,
    Product.image_url,
    Product.category,
    Product.stock,
    Product.sales_count,
    Product.merchant,
    Product.merchant_id,
    Product.created_at,
)


class SearchPipeline:
    """Builds the ranked search statement stage by stage.

    The merchant join is on the users primary key, so it never changes the
    row count and can follow pagination without reordering.
    """

    def __init__(
        self,
        query: str,
        strategy=MatchStrategy.MULTI,
        policy: ScoringPolicy = NATIVE_POLICY,
    ):
        self.query = query
        self.strategy = MatchStrategy.parse(strategy)
        self.policy = policy
        self.filter_clause = None
        self.score = build_score_expression(query, policy).label("relevance_score")
        self.ordering = []
        self.offset = 0
        self.limit = None

    def match(self, category=None, min_price=None, max_price=None):
        self.filter_clause = build_filter_clause(
            self.query, self.strategy, category, min_price, max_price
        )
        return self

    def sort(self, mode=SortMode.RELEVANCE):
        mode = SortMode.parse(mode)
        score = self.score
        if mode is SortMode.PRICE_ASC:
            ordering = [Product.price.asc(), score.desc()]
        elif mode is SortMode.PRICE_DESC:
            ordering = [Product.price.desc(), score.desc()]
        elif mode is SortMode.SALES:
            ordering = [Product.sales_count.desc(), score.desc()]
        elif mode is SortMode.NEWEST:
            ordering = [Product.created_at.desc(), score.desc()]
        else:
            ordering = [score.desc(), Product.sales_count.desc()]
        # Stable order across pages.
        ordering.append(Product.id.asc())
        self.ordering = ordering
        return self

    def paginate(self, page: int = 1, limit: int = 20):
        self.offset = max(page - 1, 0) * limit
        self.limit = limit
        return self

    def build(self):
        if self.filter_clause is None:
            self.match()
        if not self.ordering:
            self.sort()
        statement = (
            select(
                *PROJECTED_COLUMNS,
                self.score,
                User.id.label("merchant_user_id"),
                User.name.label("merchant_user_name"),
                User.shop_name.label("merchant_shop_name"),
            )
            .select_from(Product)
            .outerjoin(User, Product.merchant_id == User.id)
            .where(self.filter_clause)
            .order_by(*self.ordering)
        )
        if self.offset:
            statement = statement.offset(self.offset)
        if self.limit is not None:
            statement = statement.limit(self.limit)
        return statement

    def count_statement(self):
        if self.filter_clause is None:
            self.match()
        return select(func.count(Product.id)).where(self.filter_clause)


def _match_position(column, value: str):
    position = func.instr(func.lower(column), value.lower())
    return case((position == 0, NOT_FOUND_POSITION), else_=position)


def build_suggestion_statement(query: str, limit: int = 10, position_aware: bool = True):
    """Distinct product names for type-ahead, with the number of items sharing each."""
    conditions = [
        _contains(Product.name, query),
        _contains(Product.name_ngrams, query),
    ]
    if position_aware:
        conditions.append(_contains(Product.category, query))
    if is_alphabetic(query):
        conditions.extend(_phonetic_conditions(query))

    item_count = func.count(Product.id).label("item_count")
    columns = [
        Product.name.label("text"),
        func.min(Product.category).label("category"),
        item_count,
    ]
    if position_aware:
        position = _match_position(Product.name, query).label("match_position")
        columns.append(position)
        ordering = [position.asc(), item_count.desc(), Product.name.asc()]
    else:
        ordering = [item_count.desc(), Product.name.asc()]

    return (
        select(*columns)
        .where(or_(*conditions))
        .group_by(Product.name)
        .order_by(*ordering)
        .limit(limit)
    )


# Per-field weight of a term hit for fulltext search.
FULLTEXT_WEIGHTS = (
    ("name", 10),
    ("search_tokens", 5),
    ("search_keywords", 3),
    ("description", 1),
)


def fulltext_terms(query: str | None) -> list[str]:
    terms = []
    for term in (query or "").lower().split():
        if term not in terms:
            terms.append(term)
    return terms


def build_fulltext_statement(query: str, limit: int = 20):
    """Products containing any whitespace-separated term, ranked by weighted field hits."""
    conditions = []
    score = None
    for term in fulltext_terms(query):
        for attr, weight in FULLTEXT_WEIGHTS:
            condition = _contains(getattr(Product, attr), term)
            conditions.append(condition)
            bonus = _bonus(condition, weight)
            score = bonus if score is None else score + bonus
    if score is None:
        return None
    text_score = score.label("text_score")
    return (
        select(Product, text_score)
        .where(or_(*conditions))
        .order_by(text_score.desc(), Product.id.asc())
        .limit(limit)
    )
