class CollectionNames:
    """MongoDB collection names used by the repositories."""

    POSTER_CACHE = "poster_cache"
