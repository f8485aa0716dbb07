DEFAULT_CATEGORY = "General"
DEFAULT_MERCHANT_NAME = "官方旗舰店"
DEFAULT_PRODUCT_IMAGE = "https://via.placeholder.com/150"

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_SUGGESTION_LIMIT = 10
MAX_SUGGESTION_LIMIT = 50
DEFAULT_REINDEX_BATCH_SIZE = 500

HIGHLIGHT_OPEN = '<mark class="search-highlight">'
HIGHLIGHT_CLOSE = "</mark>"

# Request field -> Product attribute for create/update payloads.
PRODUCT_PAYLOAD_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "imageUrl": "image_url",
    "category": "category",
    "stock": "stock",
    "salesCount": "sales_count",
    "searchKeywords": "search_keywords",
    "keywords": "search_keywords",
    "productCode": "product_code",
    "merchant": "merchant",
    "merchantId": "merchant_id",
}
FLOAT_FIELDS = {"price"}
INTEGER_FIELDS = {"stock", "sales_count", "merchant_id"}

# Source attributes feeding the derived search columns.
SEARCH_SOURCE_FIELDS = ("name", "description", "category", "search_keywords")

LISTING_SORTS = {
    "createdAt": ("created_at", "desc"),
    "salesCount": ("sales_count", "desc"),
    "priceAsc": ("price", "asc"),
    "priceDesc": ("price", "desc"),
    "stock": ("stock", "desc"),
}
