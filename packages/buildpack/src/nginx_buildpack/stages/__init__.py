from .bootstrap import stage_bootstrap
from .build import stage_build
from .cache import stage_cache

__all__ = [
    "stage_cache",
    "stage_build",
    "stage_bootstrap",
]
