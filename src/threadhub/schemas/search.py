"""Search result schema."""

from typing import Literal

from pydantic import BaseModel


class SearchResult(BaseModel):
    """A single hit from the global search box."""

    id: str
    type: Literal["user", "community", "post"]
    title: str
    image: str | None = None
    url: str
