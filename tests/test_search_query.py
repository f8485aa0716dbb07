import pytest
from sqlalchemy import select

from models import Product, User
from storefront.services.search_query import (
    BASIC_POLICY,
    NATIVE_POLICY,
    MatchStrategy,
    SearchPipeline,
    SortMode,
    build_fuzzy_predicate,
    build_score_expression,
    resolve_policy,
)


def matched_names(session, query, strategy=MatchStrategy.MULTI, **filters):
    pipeline = SearchPipeline(query, strategy).match(**filters).sort().paginate(1, 50)
    return [row["name"] for row in session.execute(pipeline.build()).mappings()]


def score_of(session, product_id, query, policy=NATIVE_POLICY):
    return session.execute(
        select(build_score_expression(query, policy)).where(Product.id == product_id)
    ).scalar()


@pytest.fixture
def shelf(catalog):
    items = [
        {"name": "无线降噪耳机", "description": "沉浸式音质体验", "category": "Electronics", "stock": 5},
        {"name": "头戴耳罩", "description": "主动降噪，舒适佩戴", "category": "Electronics", "stock": 5},
        {"name": "耳罩式头戴机", "description": "", "category": "Electronics", "stock": 5},
        {"name": "降噪耳塞", "description": "", "category": "Electronics", "stock": 5},
        {"name": "机械键盘", "description": "RGB背光", "category": "Computers", "stock": 5},
        {"name": "100%纯棉T恤", "description": "", "category": "Clothing", "stock": 5},
        {"name": "纯棉T恤", "description": "", "category": "Clothing", "stock": 5},
    ]
    return {item["name"]: catalog.create_product(item).id for item in items}


class TestEnums:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("exact", MatchStrategy.EXACT),
            ("WILDCARD", MatchStrategy.WILDCARD),
            (" ngram ", MatchStrategy.NGRAM),
            ("multi", MatchStrategy.MULTI),
            ("bogus", MatchStrategy.MULTI),
            (None, MatchStrategy.MULTI),
        ],
    )
    def test_strategy_parse(self, value, expected):
        assert MatchStrategy.parse(value) is expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("price-asc", SortMode.PRICE_ASC),
            ("priceDesc", SortMode.PRICE_DESC),
            ("sales", SortMode.SALES),
            ("createdAt", SortMode.NEWEST),
            ("", SortMode.RELEVANCE),
            ("whatever", SortMode.RELEVANCE),
        ],
    )
    def test_sort_parse(self, value, expected):
        assert SortMode.parse(value) is expected

    def test_resolve_policy(self):
        assert resolve_policy("basic") is BASIC_POLICY
        assert resolve_policy("NATIVE") is NATIVE_POLICY
        assert resolve_policy("unknown") is NATIVE_POLICY
        assert resolve_policy(None, BASIC_POLICY) is BASIC_POLICY


class TestStrategies:
    def test_exact_searches_text_fields(self, session, shelf):
        names = matched_names(session, "降噪", MatchStrategy.EXACT)
        assert set(names) == {"无线降噪耳机", "头戴耳罩", "降噪耳塞"}

    def test_wildcard_allows_gaps(self, session, shelf):
        assert "耳罩式头戴机" in matched_names(session, "耳机", MatchStrategy.WILDCARD)
        assert "耳罩式头戴机" not in matched_names(session, "耳机", MatchStrategy.EXACT)

    def test_ngram_requires_every_bigram(self, session, shelf):
        assert matched_names(session, "降噪耳机", MatchStrategy.NGRAM) == ["无线降噪耳机"]

    def test_ngram_short_query_falls_back_to_contains(self, session, shelf):
        assert set(matched_names(session, "键", MatchStrategy.NGRAM)) == {"机械键盘"}

    def test_multi_accepts_partial_bigram_overlap(self, session, shelf):
        names = matched_names(session, "降噪耳机", MatchStrategy.MULTI)
        assert "无线降噪耳机" in names
        assert "降噪耳塞" in names

    def test_multi_matches_phonetic(self, session, shelf):
        assert matched_names(session, "erji") == ["无线降噪耳机"]
        assert matched_names(session, "jxjp") == ["机械键盘"]

    def test_exact_strategy_skips_phonetic(self, session, shelf):
        assert matched_names(session, "erji", MatchStrategy.EXACT) == []

    def test_like_metacharacters_are_literal(self, session, shelf):
        assert matched_names(session, "%", MatchStrategy.EXACT) == ["100%纯棉T恤"]
        assert matched_names(session, "_", MatchStrategy.EXACT) == []

    def test_category_and_price_filters(self, catalog, session):
        catalog.create_product({"name": "蓝牙耳机", "price": 99, "category": "Electronics"})
        catalog.create_product({"name": "耳机支架", "price": 39, "category": "Accessories"})
        catalog.create_product({"name": "头戴耳机", "price": 599, "category": "Electronics"})

        assert set(matched_names(session, "耳机", category="Electronics")) == {"蓝牙耳机", "头戴耳机"}
        assert matched_names(session, "耳机", min_price=50, max_price=100) == ["蓝牙耳机"]
        assert matched_names(session, "耳机", category="Electronics", max_price=50) == []


class TestFuzzyPredicate:
    def test_empty_query_matches_everything(self, session, shelf):
        count = session.query(Product).filter(build_fuzzy_predicate("  ")).count()
        assert count == len(shelf)

    def test_matches_tokens_and_initials(self, session, shelf):
        by_tokens = session.query(Product.name).filter(build_fuzzy_predicate("erji")).all()
        assert [row.name for row in by_tokens] == ["无线降噪耳机"]
        by_initials = session.query(Product.name).filter(build_fuzzy_predicate("wxjzej")).all()
        assert [row.name for row in by_initials] == ["无线降噪耳机"]


class TestScoring:
    def test_name_tiers(self, catalog, session):
        exact = catalog.create_product({"name": "耳机", "stock": 1}).id
        prefix = catalog.create_product({"name": "耳机支架", "stock": 1}).id
        suffix = catalog.create_product({"name": "蓝牙耳机", "stock": 1}).id
        inner = catalog.create_product({"name": "降噪耳机盒", "stock": 1}).id

        assert score_of(session, exact, "耳机") == pytest.approx(100)
        assert score_of(session, prefix, "耳机") == pytest.approx(80)
        assert score_of(session, suffix, "耳机") == pytest.approx(70)
        assert score_of(session, inner, "耳机") == pytest.approx(60)

    def test_non_ascii_capitals_reach_name_tiers(self, catalog, session):
        product_id = catalog.create_product({"name": "Äpfel Saft", "stock": 1}).id
        assert score_of(session, product_id, "Äpfel Saft") == pytest.approx(100)
        assert score_of(session, product_id, "äpfel") == pytest.approx(80)
        assert matched_names(session, "ÄPFEL SAFT", MatchStrategy.EXACT) == ["Äpfel Saft"]

    def test_sales_bonus_is_capped(self, catalog, session):
        modest = catalog.create_product({"name": "耳机", "stock": 1, "salesCount": 450}).id
        huge = catalog.create_product({"name": "耳机", "stock": 1, "salesCount": 50000}).id
        assert score_of(session, modest, "耳机") == pytest.approx(104.5)
        assert score_of(session, huge, "耳机") == pytest.approx(120)

    def test_out_of_stock_penalty(self, catalog, session):
        in_stock = catalog.create_product({"name": "蓝牙耳机", "stock": 3}).id
        sold_out = catalog.create_product({"name": "蓝牙耳机", "stock": 0}).id
        assert score_of(session, in_stock, "耳机") - score_of(session, sold_out, "耳机") == pytest.approx(30)

    def test_basic_policy_is_capped(self, catalog, session):
        product_id = catalog.create_product(
            {
                "name": "abc",
                "description": "abc",
                "category": "abc",
                "keywords": "abc",
                "stock": 1,
                "salesCount": 5000,
            }
        ).id
        assert score_of(session, product_id, "abc", BASIC_POLICY) == pytest.approx(100)
        assert score_of(session, product_id, "abc", NATIVE_POLICY) == pytest.approx(200)

    def test_basic_policy_counts_ngrams(self, catalog, session):
        product_id = catalog.create_product({"name": "耳机", "stock": 0}).id
        assert score_of(session, product_id, "耳机", BASIC_POLICY) == pytest.approx(60)


class TestPipeline:
    def test_count_ignores_pagination(self, session, shelf):
        pipeline = SearchPipeline("耳").match().sort().paginate(1, 1)
        assert len(session.execute(pipeline.build()).all()) == 1
        assert session.execute(pipeline.count_statement()).scalar() == 4

    def test_price_sort(self, catalog, session):
        for price in (30, 10, 20):
            catalog.create_product({"name": f"键盘{price}", "price": price, "stock": 1})
        pipeline = SearchPipeline("键盘").match().sort("price-asc")
        prices = [row["price"] for row in session.execute(pipeline.build()).mappings()]
        assert prices == [10, 20, 30]

    def test_merchant_join(self, catalog, session):
        merchant = User(name="Alice", role="merchant", shop_name="Alice Audio")
        session.add(merchant)
        session.commit()
        catalog.create_product({"name": "蓝牙耳机", "merchantId": merchant.id, "stock": 1})
        catalog.create_product({"name": "头戴耳机", "stock": 1})

        rows = session.execute(SearchPipeline("耳机").build()).mappings().all()
        by_name = {row["name"]: row for row in rows}
        assert by_name["蓝牙耳机"]["merchant_shop_name"] == "Alice Audio"
        assert by_name["蓝牙耳机"]["merchant"] == "Alice Audio"
        assert by_name["头戴耳机"]["merchant_user_id"] is None
