from .http import HttpStatusError, download_to_file, make_http_client
from .pipeline import BuildPipeline, configure_command, configure_option_string
from .tools import StreamingToolRunner, ToolResult, ToolRunner, check_tool

__all__ = [
    "BuildPipeline",
    "HttpStatusError",
    "StreamingToolRunner",
    "ToolResult",
    "ToolRunner",
    "check_tool",
    "configure_command",
    "configure_option_string",
    "download_to_file",
    "make_http_client",
]
