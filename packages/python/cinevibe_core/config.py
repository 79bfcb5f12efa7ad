TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"

RESULT_CACHE_TTL_SEC = 60 * 60  # 1 hour
RESULT_CACHE_NAMESPACE = "cinevibe:wizard:"
RESULT_CACHE_BATCH = 100  # ranked items kept per cache entry, before exclusions

GENRES_TTL_SEC = 60 * 60
DETAILS_TTL_SEC = 24 * 60 * 60

WIZARD_PAGE_SIZE = 20
WIZARD_FETCH_PAGES = (1, 2)
SURPRISE_SHUFFLE_TOP_N = 30

DISCOVER_MAX_PAGE = 500  # TMDB refuses anything beyond this
