"""
Feed item schema shared by feed sources and notifiers.

The announcer only looks at ``item_id``; every other field is display
metadata passed through to the notifier.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class FeedItem(BaseModel):
    """A single piece of content published in a feed."""

    item_id: str = Field(..., min_length=1, description="Unique ID within the feed")
    title: str = Field(default="", description="Public title")
    description: str = Field(default="", description="Description or summary text")
    url: str = Field(default="", description="Where the item can be viewed")
    thumbnail_url: str | None = Field(default=None, description="Preview image URL")
    author: str = Field(default="", description="Channel or author display name")
    published_at: datetime | None = Field(default=None, description="Publication time")
