"""Batch conversion of audio and data files between formats."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .converters import available_converters, get_converter, register
from .errors import Cancelled, ConversionError, DirectoryNotFound
from .events import CallbackListener, EventRecorder
from .models import ConversionJob, ConversionOutcome, RunState, RunSummary
from .pipeline import BatchPipeline, run_pipeline

__all__ = [
    "__version__",
    "AppConfig",
    "load_config",
    "BatchPipeline",
    "CallbackListener",
    "Cancelled",
    "ConversionError",
    "ConversionJob",
    "ConversionOutcome",
    "DirectoryNotFound",
    "EventRecorder",
    "RunState",
    "RunSummary",
    "available_converters",
    "get_converter",
    "register",
    "run_pipeline",
]
