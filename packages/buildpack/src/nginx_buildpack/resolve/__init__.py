from .models import SYSTEM_SENTINEL, BuildRequest, PackageSpec
from .resolver import ResolvedConfig, is_unsafe_range, resolve_build_request

__all__ = [
    "SYSTEM_SENTINEL",
    "BuildRequest",
    "PackageSpec",
    "ResolvedConfig",
    "is_unsafe_range",
    "resolve_build_request",
]
