"""SQLModel table models."""

from threatscope.models.entry import Entry
from threatscope.models.source import Source

__all__ = ["Entry", "Source"]
