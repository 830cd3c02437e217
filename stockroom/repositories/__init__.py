"""Row gateway and query modifiers."""

from .gateway import RowGateway, Search, SortCriterion
from .modifiers import QueryModifier, bind_modify, compose

__all__ = ["RowGateway", "Search", "SortCriterion", "QueryModifier", "bind_modify", "compose"]
