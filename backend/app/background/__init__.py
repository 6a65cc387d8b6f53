from .tag_cleanup import cleanup_tags, run_periodic_tag_cleanup

__all__ = [
    "cleanup_tags",
    "run_periodic_tag_cleanup",
]
