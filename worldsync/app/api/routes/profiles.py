"""API routes for settings profiles."""

from fastapi import APIRouter, Depends, HTTPException

from worldsync.app.core.dependencies import get_sync_context
from worldsync.app.schemas.profile import ProfileCopyRequest, ProfileResponse, ProfileSettingUpdate
from worldsync.app.schemas.sync import MessageResponse
from worldsync.app.services.profile_store import PROFILE_FIELDS, ProfileValidationError, UnknownProfileField
from worldsync.app.services.sync_scheduler import SyncContext

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/", response_model=list[ProfileResponse])
async def list_profiles(ctx: SyncContext = Depends(get_sync_context)):
    """List all settings profiles in config order."""
    return [ProfileResponse.from_profile(profile) for profile in ctx.profiles.list_profiles()]


@router.get("/{name}", response_model=ProfileResponse)
async def get_profile(name: str, ctx: SyncContext = Depends(get_sync_context)):
    """Get a profile. Profiles that don't exist yet read as defaults."""
    return ProfileResponse.from_profile(ctx.profiles.get(name))


@router.put("/{name}/{setting}", response_model=ProfileResponse)
async def set_profile_setting(
    name: str,
    setting: str,
    update: ProfileSettingUpdate,
    ctx: SyncContext = Depends(get_sync_context),
):
    """Set one profile setting from its textual form."""
    try:
        ctx.profiles.set_from_text(name, setting, update.value, now=ctx.clock())
    except UnknownProfileField:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown setting '{setting}', expected one of: {', '.join(PROFILE_FIELDS)}",
        )
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ProfileResponse.from_profile(ctx.profiles.get(name))


@router.post("/{name}/copy", response_model=ProfileResponse)
async def copy_profile(name: str, request: ProfileCopyRequest, ctx: SyncContext = Depends(get_sync_context)):
    """Overwrite the target profile with this profile's settings."""
    try:
        ctx.profiles.copy(name, request.target)
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProfileResponse.from_profile(ctx.profiles.get(request.target))


@router.delete("/{name}", response_model=MessageResponse)
async def clear_profile(name: str, ctx: SyncContext = Depends(get_sync_context)):
    """Clear all settings of a profile."""
    try:
        ctx.profiles.clear(name)
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message=f"Cleared profile {name}")
