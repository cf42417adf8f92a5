from .generator import (
    BootstrapFile,
    BootstrapResult,
    RuntimeBootstrapGenerator,
    should_write,
)
from .templates import render_release

__all__ = [
    "BootstrapFile",
    "BootstrapResult",
    "RuntimeBootstrapGenerator",
    "render_release",
    "should_write",
]
