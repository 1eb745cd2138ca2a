"""
Profile routes. Reading a single profile is public; everything else needs a token,
and writes are limited to the caller's own profile.
"""

from fastapi import APIRouter, HTTPException, Query, Response, status

from core.dependencies import PrincipalOptional, PrincipalRequired, ProfileClientDep
from models.profile import FollowerList, FollowingList, ProfileInput, ProfileList, UserProfile
from models.schemas import MessageResponse
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

PageQuery = Query(default=1, ge=1)
PageSizeQuery = Query(default=20, ge=1, le=100, alias="pageSize")


def _require_owner(user_id: str, subject: str) -> None:
    if user_id != subject:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.get("/me", response_model=UserProfile)
async def get_my_profile(principal: PrincipalRequired, profiles: ProfileClientDep) -> UserProfile:
    return await profiles.get_profile(principal.subject)


@router.get("", response_model=ProfileList)
async def list_profiles(
    principal: PrincipalRequired,
    profiles: ProfileClientDep,
    page: int = PageQuery,
    page_size: int = PageSizeQuery,
) -> ProfileList:
    return await profiles.list_profiles(page, page_size)


@router.post("", response_model=UserProfile, status_code=status.HTTP_201_CREATED)
async def create_profile(body: ProfileInput, principal: PrincipalRequired, profiles: ProfileClientDep) -> UserProfile:
    return await profiles.create_profile(body.to_profile(principal.subject))


@router.get("/{user_id}", response_model=UserProfile)
async def get_profile(user_id: str, principal: PrincipalOptional, profiles: ProfileClientDep) -> UserProfile:
    """Public: anonymous callers may view any profile."""
    logger.debug("profile_view", extra={"user_id": user_id, "anonymous": principal is None})
    return await profiles.get_profile(user_id)


@router.put("/{user_id}", response_model=UserProfile)
async def update_profile(
    user_id: str,
    body: ProfileInput,
    principal: PrincipalRequired,
    profiles: ProfileClientDep,
) -> UserProfile:
    _require_owner(user_id, principal.subject)
    return await profiles.update_profile(body.to_profile(user_id))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(user_id: str, principal: PrincipalRequired, profiles: ProfileClientDep) -> Response:
    _require_owner(user_id, principal.subject)
    await profiles.delete_profile(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/follow", response_model=MessageResponse)
async def follow(user_id: str, principal: PrincipalRequired, profiles: ProfileClientDep) -> MessageResponse:
    if user_id == principal.subject:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    await profiles.follow(principal.subject, user_id)
    return MessageResponse(message="Followed")


@router.post("/{user_id}/unfollow", response_model=MessageResponse)
async def unfollow(user_id: str, principal: PrincipalRequired, profiles: ProfileClientDep) -> MessageResponse:
    await profiles.unfollow(principal.subject, user_id)
    return MessageResponse(message="Unfollowed")


@router.get("/{user_id}/followers", response_model=FollowerList)
async def list_followers(
    user_id: str,
    principal: PrincipalRequired,
    profiles: ProfileClientDep,
    page: int = PageQuery,
    page_size: int = PageSizeQuery,
) -> FollowerList:
    return await profiles.list_followers(user_id, page, page_size)


@router.get("/{user_id}/following", response_model=FollowingList)
async def list_following(
    user_id: str,
    principal: PrincipalRequired,
    profiles: ProfileClientDep,
    page: int = PageQuery,
    page_size: int = PageSizeQuery,
) -> FollowingList:
    return await profiles.list_following(user_id, page, page_size)
