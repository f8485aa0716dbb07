from flask import Blueprint, current_app, g, jsonify

from helpers import require_admin
from storefront.services.search_indexer import SearchIndexer


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/products/rebuild-search-index", methods=["POST"])
def rebuild_search_index():
    require_admin()
    total = SearchIndexer(g.db, current_app).rebuild_all()
    return jsonify({"message": f"Search index rebuilt for {total} products", "total": total})
