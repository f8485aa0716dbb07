from __future__ import annotations

import sys

from database import SessionLocal
from models import Product
from storefront import create_app
from storefront.services.search_indexer import SearchIndexer


def main() -> int:
    app = create_app()
    with app.app_context():
        session = SessionLocal()
        batch_size = app.config.get("SEARCH_REINDEX_BATCH_SIZE", 500)
        if "--batch-size" in sys.argv:
            try:
                batch_size = int(sys.argv[sys.argv.index("--batch-size") + 1])
            except (IndexError, ValueError):
                print("--batch-size expects an integer.")
                return 1
        try:
            total = session.query(Product).count()
            if total == 0:
                print("No products found to index.")
                return 0

            print(f"Rebuilding search data for {total} products in batches of {batch_size}...")

            def report(processed, last_id):
                print(f"Indexed {processed} / {total} (last id {last_id})")

            processed = SearchIndexer(session, app).rebuild_all(batch_size=batch_size, progress=report)
            print(f"Done. Indexed {processed} products.")
            return 0
        finally:
            SessionLocal.remove()


if __name__ == "__main__":
    raise SystemExit(main())
