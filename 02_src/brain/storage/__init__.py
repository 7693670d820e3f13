"""Storage module."""

from .storage import IStorage, Storage, cosine_similarity, keyword_score

__all__ = ["IStorage", "Storage", "cosine_similarity", "keyword_score"]
