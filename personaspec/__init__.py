"""PersonaSpec: persona-driven Playwright testing with AI vision analysis."""

from . import templates
from .analysis import analyze
from .collector import CollectorConfig, ObservationCollector, PageHandle
from .errors import (
    ApiError,
    ArtifactIOError,
    ConfigError,
    InputError,
    NetworkError,
    PersonaSpecError,
    ValidationError,
)
from .personas import PersonaDefinition, define_persona
from .report import render_html, write_report
from .results import (
    Observation,
    PersonaTestResults,
    Screenshot,
    SessionMetrics,
    TaskResult,
    TestSummary,
    load_results,
)

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "ArtifactIOError",
    "CollectorConfig",
    "ConfigError",
    "InputError",
    "NetworkError",
    "Observation",
    "ObservationCollector",
    "PageHandle",
    "PersonaDefinition",
    "PersonaSpecError",
    "PersonaTestResults",
    "Screenshot",
    "SessionMetrics",
    "TaskResult",
    "TestSummary",
    "ValidationError",
    "analyze",
    "define_persona",
    "load_results",
    "render_html",
    "templates",
    "write_report",
]
