"""
Dataset container and stratified train/test splitting.
"""
from lassotune.data.dataset import ColumnType, Dataset, column_type
from lassotune.data.splits import (
    SplitResult,
    make_strata,
    stratified_split,
    summarize_strata,
)

__all__ = [
    "ColumnType",
    "Dataset",
    "column_type",
    "SplitResult",
    "make_strata",
    "stratified_split",
    "summarize_strata",
]
