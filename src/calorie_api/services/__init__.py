"""Business logic services."""

from .analysis import AnalysisEvent, AnalysisService
from .meals import MealService
from .progress import ProgressService
from .settings import SettingsService
from .upload import ScratchFiles, UploadService

__all__ = [
    "AnalysisEvent",
    "AnalysisService",
    "MealService",
    "ProgressService",
    "SettingsService",
    "ScratchFiles",
    "UploadService",
]
