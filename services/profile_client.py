"""Client for the profile backend."""

import httpx

from core.config import Settings
from models.profile import (
    FollowerList,
    FollowingList,
    FollowRequest,
    ProfileEnvelope,
    ProfileList,
    UserProfile,
)
from services.base import ServiceClient
from utils.logging import get_logger

logger = get_logger(__name__)


class ProfileServiceClient(ServiceClient):
    service_name = "profile"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__(http_client, settings.PROFILE_SERVICE_URL, settings.HTTP_REQUEST_TIMEOUT_SECONDS)

    async def create_profile(self, profile: UserProfile) -> UserProfile:
        logger.info("profile_create", extra={"user_id": profile.id})
        return await self.post("/", UserProfile, ProfileEnvelope(profile=profile))

    async def get_profile(self, user_id: str) -> UserProfile:
        return await self.get(f"/{user_id}", UserProfile)

    async def list_profiles(self, page: int = 1, page_size: int = 20) -> ProfileList:
        return await self.get("/", ProfileList, params={"page": page, "pageSize": page_size})

    async def update_profile(self, profile: UserProfile) -> UserProfile:
        logger.info("profile_update", extra={"user_id": profile.id})
        return await self.put(f"/{profile.id}", UserProfile, ProfileEnvelope(profile=profile))

    async def delete_profile(self, user_id: str) -> None:
        logger.info("profile_delete", extra={"user_id": user_id})
        await self.delete(f"/{user_id}")

    async def follow(self, follower_id: str, followee_id: str) -> None:
        await self.post("/follow", None, FollowRequest(follower_id=follower_id, followee_id=followee_id))

    async def unfollow(self, follower_id: str, followee_id: str) -> None:
        await self.post("/unfollow", None, FollowRequest(follower_id=follower_id, followee_id=followee_id))

    async def list_followers(self, user_id: str, page: int = 1, page_size: int = 20) -> FollowerList:
        return await self.get(f"/{user_id}/followers", FollowerList, params={"page": page, "pageSize": page_size})

    async def list_following(self, user_id: str, page: int = 1, page_size: int = 20) -> FollowingList:
        return await self.get(f"/{user_id}/following", FollowingList, params={"page": page, "pageSize": page_size})
