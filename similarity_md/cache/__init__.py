from similarity_md.cache.token_cache import TokenCache

__all__ = ["TokenCache"]
