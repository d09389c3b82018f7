"""API routes for mapping worlds to settings profiles."""

from fastapi import APIRouter, Depends, HTTPException

from worldsync.app.core.dependencies import get_sync_context
from worldsync.app.schemas.sync import MessageResponse, WorldMappingRequest, WorldResponse
from worldsync.app.services.profile_store import ProfileValidationError
from worldsync.app.services.sync_scheduler import SyncContext
from worldsync.app.services.world_registry import InMemoryWorldRegistry

router = APIRouter(prefix="/worlds", tags=["worlds"])


@router.get("/", response_model=list[WorldResponse])
async def list_worlds(ctx: SyncContext = Depends(get_sync_context)):
    """List loaded worlds with the profile applied to each."""
    registry = ctx.registry
    worlds = []
    for name in registry.list_loaded_worlds():
        world = WorldResponse(
            name=name,
            profile=ctx.profiles.profile_name_for(name),
            day_cycle=registry.get_day_cycle_enabled(name),
            weather_cycle=registry.get_weather_cycle_enabled(name),
        )
        # Only the in-memory host exposes the applied state
        if isinstance(registry, InMemoryWorldRegistry):
            state = registry.get_world(name)
            if state:
                world.full_time = state.full_time
                world.storm = state.storm
                world.thundering = state.thundering
        worlds.append(world)
    return worlds


@router.put("/{world}", response_model=MessageResponse)
async def sync_world(world: str, request: WorldMappingRequest, ctx: SyncContext = Depends(get_sync_context)):
    """Begin syncing a world with a profile."""
    try:
        ctx.profiles.map_world(world, request.profile)
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not request.profile:
        return MessageResponse(message=f"No longer syncing {world}")
    return MessageResponse(message=f"Now syncing {world}")


@router.delete("/{world}", response_model=MessageResponse)
async def forget_world(world: str, ctx: SyncContext = Depends(get_sync_context)):
    """Stop syncing a world."""
    try:
        ctx.profiles.unmap_world(world)
    except ProfileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message=f"No longer syncing {world}")
