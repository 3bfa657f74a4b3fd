"""
quickfix/models/guide.py

Repair guides, their categories, comments and ratings.

List endpoints populate ``category`` and ``user`` as small objects; write
endpoints answer with bare ids. Both shapes are accepted.
"""

from datetime import datetime
from typing import Any, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Category(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None


class Author(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    username: Optional[str] = None
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")


def _ref(value: Any) -> Any:
    if isinstance(value, str):
        return {"_id": value}
    return value


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    content: str = ""
    user: Optional[Author] = None
    guide: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("user", mode="before")
    @classmethod
    def populated_user(cls, value: Any) -> Any:
        return _ref(value)


class Guide(BaseModel):
    """A guide as listed, or in full (content and comments) when fetched by slug."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    slug: str
    description: str = ""
    content: Optional[str] = None
    category: Optional[Category] = None
    user: Optional[Author] = None
    is_premium: bool = Field(default=False, alias="isPremium")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    average_rating: float = Field(default=0.0, alias="averageRating")
    num_of_reviews: int = Field(default=0, alias="numOfReviews")
    user_rating: int = Field(default=0, alias="userRating")
    comments: List[Comment] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("category", "user", mode="before")
    @classmethod
    def populated_refs(cls, value: Any) -> Any:
        return _ref(value)

    @property
    def rated_by_user(self) -> bool:
        return self.user_rating > 0

    def with_comment(self, comment: Comment) -> "Guide":
        return self.model_copy(update={"comments": [*self.comments, comment]})

    def with_rating(self, stars: int) -> "Guide":
        """Fold one new rating into the average the way the server computes it."""
        total = self.average_rating * self.num_of_reviews + stars
        count = self.num_of_reviews + 1
        return self.model_copy(update={
            "average_rating": total / count,
            "num_of_reviews": count,
            "user_rating": stars,
        })


class GuidePage(BaseModel):
    """One page of /guides."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    guides: List[Guide] = Field(default_factory=list)
    page: int = 1
    pages: int = 1
    total: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages
