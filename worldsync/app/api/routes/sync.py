"""API routes for triggering and inspecting synchronization."""

from fastapi import APIRouter, Depends

from worldsync.app.core.dependencies import get_sync_scheduler
from worldsync.app.schemas.sync import MessageResponse, ProfileSyncResponse, SyncStatus, WeatherFetchResponse
from worldsync.app.services.sync_scheduler import SyncScheduler
from worldsync.app.services.weather_fetcher import mask_secret

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatus)
async def get_status(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Get scheduler state, runtime options and the weather cache."""
    ctx = scheduler.context
    api_key = ctx.weather_api_key
    return SyncStatus(
        state=scheduler.state.value,
        debug=scheduler.debug,
        weather_api_key_set=bool(api_key),
        weather_api_key=mask_secret(api_key, api_key),
        fetch_weather_period=ctx.weather_fetch_period,
        config_autosave=ctx.config_autosave,
        config_autosave_period=ctx.config_autosave_period,
        scheduled_tasks=ctx.ticks.task_count,
        weather_cache=ctx.weather_cache.snapshot(),
    )


@router.post("/time", response_model=list[ProfileSyncResponse])
async def force_sync(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Run one sync tick now and report what it did."""
    return [ProfileSyncResponse.from_result(result) for result in scheduler.force_sync()]


@router.post("/weather", response_model=WeatherFetchResponse)
async def force_fetch_weather(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Fetch real-life weather for every profile city now."""
    if not scheduler.context.weather_api_key:
        return WeatherFetchResponse(enabled=False)
    cities = await scheduler.force_fetch_weather()
    return WeatherFetchResponse(enabled=True, cities=cities)


@router.post("/reload", response_model=MessageResponse)
async def reload_config(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Reload the config from the database and reschedule all tasks."""
    await scheduler.refresh()
    return MessageResponse(message="Reloaded the configuration")


@router.post("/save", response_model=MessageResponse)
async def save_config(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Save the config to the database now."""
    await scheduler.flush()
    return MessageResponse(message="Saved the configuration")


@router.post("/debug", response_model=MessageResponse)
async def toggle_debugging(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Toggle logging of every sync tick."""
    enabled = scheduler.toggle_debugging()
    return MessageResponse(message=f"Turned debugging mode {'on' if enabled else 'off'}")
