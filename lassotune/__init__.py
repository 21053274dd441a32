"""
lassotune - sparse linear regression with influence screening,
leakage-safe preprocessing, stratified resampling and penalty tuning.

Submodules are imported lazily. Use explicit imports like:
    from lassotune.data import Dataset
    from lassotune.pipeline import LassoWorkflow
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Dataset",
    "LassoConfig",
    "LassoWorkflow",
    "PreprocessingPipeline",
]


def __getattr__(name: str):
    """Lazy import of the main entry points."""
    if name == 'Dataset':
        from lassotune.data.dataset import Dataset
        return Dataset
    elif name == 'LassoConfig':
        from lassotune.config.lasso_config import LassoConfig
        return LassoConfig
    elif name == 'LassoWorkflow':
        from lassotune.pipeline.runner import LassoWorkflow
        return LassoWorkflow
    elif name == 'PreprocessingPipeline':
        from lassotune.preprocessing.pipeline import PreprocessingPipeline
        return PreprocessingPipeline
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
