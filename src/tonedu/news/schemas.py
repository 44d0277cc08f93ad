"""TON news feed schemas."""

from datetime import date
from typing import Literal

from pydantic import BaseModel

NewsSource = Literal["telegram", "twitter"]


class NewsItem(BaseModel):
    id: str
    title: str
    content: str
    date: date
    source: NewsSource
    url: str
    image_url: str | None = None
