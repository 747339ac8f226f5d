# Popularity
DECAY_RATE = 0.9             # per whole week elapsed
POPULARITY_FLOOR = 1
TRENDING_WINDOW_DAYS = 7

# Inventory forecasting
SALES_WINDOW_DAYS = 30       # moving-average window for daily sales
SAFETY_STOCK_DAYS = 7        # one week buffer
DEFAULT_LEAD_TIME_DAYS = 7

# Similarity
SIMILARITY_CATEGORY_WEIGHT = 0.6
SIMILARITY_PRICE_WEIGHT = 0.4
SIMILAR_PRICE_BAND = 0.3     # candidates within ±30% of the source price

# Personalization
TOP_CATEGORIES = 3
PERSONAL_PRICE_LOW = 0.8     # 20% below the cheapest viewed price
PERSONAL_PRICE_HIGH = 1.2    # 20% above the dearest viewed price

# Search relevance (0-100)
TEXT_WEIGHT = 0.5
POPULARITY_WEIGHT = 0.3
RATING_WEIGHT = 0.2
MAX_TEXT_SCORE = 10          # Mongo textScore rarely exceeds this
MAX_POPULARITY = 10_000
EXACT_MATCH_BOOST = 20

# Dynamic pricing
SCARCE_STOCK_RATIO = 0.2
GLUT_STOCK_RATIO = 0.8
COMPETITOR_BAND = 0.05
DEFAULT_COST_RATIO = 0.6     # cost floor when the product has no cost price

# Cache namespaces
CACHE_BEST_SELLERS = "best_sellers"
CACHE_TRENDING = "trending"
