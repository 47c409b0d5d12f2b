from . import (
    blob_store,
    snap_store,
    expiry_sweep,
    moderation_client,
    moderation_service,
)

__all__ = [
    "blob_store",
    "expiry_sweep",
    "moderation_client",
    "moderation_service",
    "snap_store",
]
