from fastapi import Request

from worldsync.app.services.sync_scheduler import SyncContext, SyncScheduler


def get_sync_scheduler(request: Request) -> SyncScheduler:
    """Get the sync scheduler created by the application lifespan."""
    scheduler = getattr(request.app.state, "sync_scheduler", None)
    if scheduler is None:
        raise RuntimeError("Sync scheduler is not running")
    return scheduler


def get_sync_context(request: Request) -> SyncContext:
    return get_sync_scheduler(request).context
