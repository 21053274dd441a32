"""
Workflow utilities and data classes.

Shared stage bookkeeping and JSON serialization helpers for the workflow runner.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


class StageStatus(Enum):
    """Status of a workflow stage execution."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageResult:
    """Result of executing a workflow stage."""

    stage_name: str
    status: StageStatus
    start_time: datetime
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stage_name": self.stage_name,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "metadata": self.metadata,
        }


def finish_stage(
    result: StageResult,
    status: StageStatus,
    error: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> StageResult:
    """Stamp end time, duration and status on a running stage."""
    result.end_time = datetime.now()
    result.duration_seconds = (result.end_time - result.start_time).total_seconds()
    result.status = status
    result.error = error
    if metadata:
        result.metadata.update(metadata)
    return result


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars and arrays."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def json_safe(obj: Any) -> Any:
    """Recursively replace NaN and infinite floats with None."""
    if isinstance(obj, dict):
        return {key: json_safe(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [json_safe(value) for value in obj]
    if isinstance(obj, np.ndarray):
        return json_safe(obj.tolist())
    if isinstance(obj, (float, np.floating)):
        return float(obj) if np.isfinite(obj) else None
    return obj


def write_json(data: dict[str, Any], path: Path) -> Path:
    """Write ``data`` as strict JSON; non-finite floats become null."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(json_safe(data), f, indent=2, cls=NumpyEncoder, allow_nan=False)
    return path


__all__ = [
    "NumpyEncoder",
    "StageResult",
    "StageStatus",
    "finish_stage",
    "json_safe",
    "write_json",
]
