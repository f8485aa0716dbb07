from flask import Blueprint, current_app, g, jsonify, request

from storefront.errors import ValidationError
from storefront.services.catalog_service import CatalogService, product_to_dict
from storefront.services.search_indexer import SearchIndexer
from storefront.services.search_query import MatchStrategy
from storefront.services.search_service import ProductSearchService


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _catalog():
    return CatalogService(g.db, current_app)


def _search():
    return ProductSearchService(g.db, current_app)


@products_bp.route("", methods=["GET"])
def list_products():
    products = _catalog().list_products(
        category=(request.args.get("category") or "").strip() or None,
        search=request.args.get("search"),
        merchant=(request.args.get("merchant") or "").strip() or None,
        sort_by=request.args.get("sortBy", "createdAt"),
    )
    return jsonify([product_to_dict(product) for product in products])


@products_bp.route("", methods=["POST"])
def create_product():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    product = _catalog().create_product(payload)
    return jsonify(product_to_dict(product)), 201


@products_bp.route("/category/<category>")
def list_by_category(category):
    products = _catalog().list_by_category(category)
    return jsonify([product_to_dict(product) for product in products])


@products_bp.route("/search")
def basic_search():
    products = _search().basic_search(request.args.get("q"), request.args.get("sortBy"))
    return jsonify([product_to_dict(product) for product in products])


@products_bp.route("/search/advanced")
def advanced_search():
    return jsonify(_search().search_from_args(request.args, strategy=MatchStrategy.MULTI))


@products_bp.route("/search/native")
def native_search():
    return jsonify(_search().search_from_args(request.args))


@products_bp.route("/search/fulltext")
def fulltext_search():
    return jsonify(_search().fulltext_search(request.args.get("q"), request.args.get("limit")))


@products_bp.route("/search/suggestions")
def suggestions():
    result = _search().suggest(
        request.args.get("q"), request.args.get("limit"), position_aware=False
    )
    return jsonify(result)


@products_bp.route("/search/native/suggestions")
def native_suggestions():
    result = _search().suggest(request.args.get("q"), request.args.get("limit"))
    return jsonify(result)


@products_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id):
    return jsonify(product_to_dict(_catalog().get_product(product_id)))


@products_bp.route("/<int:product_id>", methods=["PATCH"])
def update_product(product_id):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    product = _catalog().update_product(product_id, payload)
    return jsonify(product_to_dict(product))


@products_bp.route("/<int:product_id>", methods=["DELETE"])
def delete_product(product_id):
    _catalog().delete_product(product_id)
    return jsonify({"message": "Product deleted"})


@products_bp.route("/<int:product_id>/search-data", methods=["POST"])
def refresh_search_data(product_id):
    fields = SearchIndexer(g.db, current_app).reindex_product(product_id)
    return jsonify(
        {
            "message": "Search data updated",
            "searchData": {
                "nameNgrams": fields["name_ngrams"],
                "namePhonetic": fields["name_phonetic"],
                "namePhoneticInitials": fields["name_phonetic_initials"],
                "searchTokens": fields["search_tokens"],
            },
        }
    )
