from .articles import ArticleAdmin
from .collections import CollectionAdmin, ShelfInline

__all__ = ["ArticleAdmin", "CollectionAdmin", "ShelfInline"]
