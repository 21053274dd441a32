"""
End-to-end workflow: screen, split, resample, tune, finalize.
"""
from lassotune.pipeline.runner import LassoWorkflow, WorkflowResult
from lassotune.pipeline.utils import StageResult, StageStatus

__all__ = [
    "LassoWorkflow",
    "WorkflowResult",
    "StageResult",
    "StageStatus",
]
