from .config import Settings, load_settings
from .errors import (
    BuildpackError,
    CacheIOFailure,
    ConfigurationWarning,
    ExternalToolFailure,
    FetchFailure,
    StageError,
    stage_error_from_exc,
)
from .fs import (
    atomic_write_text,
    copy_file,
    copy_tree,
    ensure_parent,
    make_tmp_dir_in,
    relpath_posix,
    remove_tree,
    safe_unlink,
)
from .hashing import FileDigest, values_digest
from .logging import ILogger, bind, clear_bindings, configure_logging, get_logger
from .paths import BuildLayout
from .provenance import RunProvenance, monotonic_ms, new_run_id, utc_now_iso

__all__ = [
    "Settings",
    "load_settings",
    "BuildpackError",
    "CacheIOFailure",
    "ConfigurationWarning",
    "ExternalToolFailure",
    "FetchFailure",
    "StageError",
    "stage_error_from_exc",
    "atomic_write_text",
    "copy_file",
    "copy_tree",
    "ensure_parent",
    "make_tmp_dir_in",
    "relpath_posix",
    "remove_tree",
    "safe_unlink",
    "FileDigest",
    "values_digest",
    "ILogger",
    "bind",
    "clear_bindings",
    "configure_logging",
    "get_logger",
    "BuildLayout",
    "RunProvenance",
    "monotonic_ms",
    "new_run_id",
    "utc_now_iso",
]
