from .context import RunContext, RunInputs
from .events import EventSink, EventType
from .report import RunReport
from .runner import PipelineRunner, RunnerConfig
from .stage import Stage, StageFn, StageResult

__all__ = [
    "EventSink",
    "EventType",
    "PipelineRunner",
    "RunContext",
    "RunInputs",
    "RunReport",
    "RunnerConfig",
    "Stage",
    "StageFn",
    "StageResult",
]
