"""Background job modules for RQ workers and schedulers."""

from .maintenance import delete_expired_snaps_job, delete_expired_stories_job, purge_expired_content_job

__all__ = [
    "delete_expired_snaps_job",
    "delete_expired_stories_job",
    "purge_expired_content_job",
]
