"""Profile backend payloads."""

from pydantic import Field

from models.schemas import WireModel


class Location(WireModel):
    country: str
    city: str


class Birthdate(WireModel):
    year: int = Field(..., ge=1900, le=2100)
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)


class UserProfile(WireModel):
    id: str
    name: str
    email: str
    image_id: str | None = None
    bio: str | None = None
    location: Location | None = None
    birthdate: Birthdate | None = None
    weight: float | None = None
    height: float | None = None
    follower_count: int = 0
    following_count: int = 0


class ProfileInput(WireModel):
    """What a client may send; id comes from the token, counters from the backend."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=320)
    image_id: str | None = None
    bio: str | None = Field(default=None, max_length=2000)
    location: Location | None = None
    birthdate: Birthdate | None = None
    weight: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)

    def to_profile(self, user_id: str) -> UserProfile:
        return UserProfile(id=user_id, **self.model_dump())


class ProfileEnvelope(WireModel):
    profile: UserProfile


class ProfileList(WireModel):
    profiles: list[UserProfile]
    total: int
    page: int
    page_size: int


class FollowRequest(WireModel):
    follower_id: str
    followee_id: str


class FollowerList(WireModel):
    follower_ids: list[str]
    total: int
    page: int
    page_size: int


class FollowingList(WireModel):
    following_ids: list[str]
    total: int
    page: int
    page_size: int
