"""Observation collector for persona-driven test sessions.

One collector accumulates everything a persona session produces (observations,
screenshots, task results, interaction counters) and writes it out as a single
JSON artifact at the end of the session:

    collector = ObservationCollector(CollectorConfig(output_dir="test-results", persona=persona))
    collector.start_task()
    page.goto(base_url)
    collector.track_page_load()
    collector.capture(page, "homepage", "First view of the site")
    collector.record("success", "Clear headline", "Homepage hero")
    collector.finish_task("Understand purpose", True, "Headline was clear")
    collector.persist()

A collector is single-writer: drive it from one sequential test script.
"""

from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .errors import ArtifactIOError, ValidationError
from .events import EventWriter
from .personas import PersonaDefinition
from .results import (
    OBSERVATION_SEVERITIES,
    OBSERVATION_TYPES,
    Observation,
    PersonaTestResults,
    Screenshot,
    SessionMetrics,
    TaskResult,
)
from .utils import epoch_ms, monotonic_ms, now_utc_iso, persona_slug, safe_filename, write_json


SCREENSHOT_FORMATS = ("png", "jpeg")


class PageHandle(Protocol):
    """The slice of a browser page the collector needs.

    Playwright's sync ``Page`` satisfies this; ``url`` may be a property or a
    zero-argument method.
    """

    def screenshot(self, **kwargs: Any) -> bytes: ...

    def title(self) -> str: ...


@dataclass(frozen=True)
class CollectorConfig:
    output_dir: Path | str
    persona: PersonaDefinition
    include_base64: bool = True
    screenshot_format: str = "png"
    events_path: Path | str | None = None


class ObservationCollector:
    def __init__(self, config: CollectorConfig) -> None:
        if config.screenshot_format not in SCREENSHOT_FORMATS:
            raise ValidationError(
                f"Unsupported screenshot format: {config.screenshot_format}",
                hint=f"Use one of: {', '.join(SCREENSHOT_FORMATS)}",
            )
        self.config = config
        self.output_dir = Path(config.output_dir)
        self._persona = config.persona
        self._events: EventWriter | None = None
        self._start_session()

    def _start_session(self) -> None:
        session_id = str(uuid.uuid4())
        if self.config.events_path:
            events = EventWriter(Path(self.config.events_path), session_id)
            events.emit("session_started", persona=self._persona.identity, output_dir=str(self.output_dir))
            self._events = events
        self.session_id = session_id
        self._observations: list[Observation] = []
        self._screenshots: list[Screenshot] = []
        self._tasks: list[TaskResult] = []
        self._task_started_ms: int | None = None
        self._metrics = SessionMetrics(start_time=now_utc_iso())

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self._events is not None:
            self._events.emit(event_type, **payload)

    # Screenshots

    def capture(self, page: PageHandle, name: str, context: str) -> Screenshot:
        """Capture the page, write it under ``screenshots/`` and record it.

        Raises ``ArtifactIOError`` if the image cannot be written; nothing is
        recorded in that case and the session can continue.
        """

        fmt = self.config.screenshot_format
        timestamp = now_utc_iso()
        screenshot_dir = self.output_dir / "screenshots"
        filepath = screenshot_dir / f"{safe_filename(name)}-{epoch_ms()}-{uuid.uuid4().hex[:6]}.{fmt}"
        try:
            screenshot_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactIOError(
                f"Could not create screenshot directory {screenshot_dir}: {exc.strerror or exc}",
                path=screenshot_dir,
            ) from exc

        image = page.screenshot(type=fmt, full_page=False)
        try:
            filepath.write_bytes(image)
        except OSError as exc:
            raise ArtifactIOError(f"Could not write screenshot {filepath}: {exc.strerror or exc}", path=filepath) from exc

        shot = Screenshot(
            name=name,
            context=context,
            url=_page_url(page),
            page_title=str(page.title()),
            filepath=str(filepath),
            encoded_image=base64.b64encode(image).decode("ascii") if self.config.include_base64 else "",
            timestamp=timestamp,
        )
        self._emit("screenshot", name=name, url=shot.url, filepath=shot.filepath)
        self._screenshots.append(shot)
        return shot

    screenshot = capture

    # Observations and tasks

    def record(
        self,
        type: str,
        description: str,
        location: str,
        *,
        severity: str | None = None,
        recommendation: str | None = None,
    ) -> Observation:
        if type not in OBSERVATION_TYPES:
            raise ValidationError(
                f"Unknown observation type: {type}",
                hint=f"Use one of: {', '.join(OBSERVATION_TYPES)}",
            )
        if severity is not None and severity not in OBSERVATION_SEVERITIES:
            raise ValidationError(
                f"Unknown observation severity: {severity}",
                hint=f"Use one of: {', '.join(OBSERVATION_SEVERITIES)}",
            )
        observation = Observation(
            type=type,
            description=description,
            location=location,
            timestamp=now_utc_iso(),
            severity=severity,
            recommendation=recommendation,
        )
        self._emit("observation", observation=observation.to_dict())
        self._observations.append(observation)
        return observation

    observe = record

    def start_task(self) -> None:
        # Only one task is in flight; a second start replaces the first.
        started = monotonic_ms()
        self._emit("task_started")
        self._task_started_ms = started

    def finish_task(self, name: str, success: bool, notes: str) -> TaskResult:
        """Record a finished task.

        Without a preceding ``start_task()`` the duration is 0.
        """

        started = self._task_started_ms
        duration_ms = max(0, monotonic_ms() - started) if started is not None else 0
        result = TaskResult(name=name, success=bool(success), duration_ms=duration_ms, notes=notes)
        self._emit("task_finished", task=result.to_dict())
        self._tasks.append(result)
        self._task_started_ms = None
        return result

    record_task = finish_task

    # Counters

    def track_page_load(self) -> None:
        self._emit("page_load", count=self._metrics.pages_visited + 1)
        self._metrics.pages_visited += 1

    def track_click(self) -> None:
        self._emit("click", count=self._metrics.click_count + 1)
        self._metrics.click_count += 1

    def track_search(self) -> None:
        self._emit("search", count=self._metrics.search_count + 1)
        self._metrics.search_count += 1

    def track_back_nav(self) -> None:
        """High counts usually point at a confused persona."""
        self._emit("back_nav", count=self._metrics.back_nav_count + 1)
        self._metrics.back_nav_count += 1

    def log_console_error(self, message: str) -> None:
        self._emit("console_error", message=message)
        self._metrics.console_errors.append(message)

    add_console_error = log_console_error

    def track_viewport(self, viewport: str) -> None:
        if viewport not in self._metrics.viewports_tested:
            self._emit("viewport", viewport=viewport)
            self._metrics.viewports_tested.append(viewport)

    # Snapshots

    @property
    def persona(self) -> PersonaDefinition:
        return self._persona

    @property
    def observations(self) -> list[Observation]:
        return list(self._observations)

    @property
    def screenshots(self) -> list[Screenshot]:
        return list(self._screenshots)

    @property
    def tasks(self) -> list[TaskResult]:
        return list(self._tasks)

    @property
    def metrics(self) -> SessionMetrics:
        return self._metrics.copy()

    def results(self) -> PersonaTestResults:
        return PersonaTestResults(
            persona=self._persona.identity,
            background=self._persona.background,
            goals=list(self._persona.goals),
            behaviors=list(self._persona.behaviors),
            session=self._metrics.copy(),
            tasks=list(self._tasks),
            observations=list(self._observations),
            screenshots=list(self._screenshots),
        )

    @property
    def results_path(self) -> Path:
        return self.output_dir / f"{persona_slug(self._persona.name)}-observations.json"

    def persist(self) -> Path:
        """Write the session artifact, replacing any previous file, and return its path."""

        # Collector state is only stamped once the file and the event are both written.
        results = self.results()
        results.session.end_time = now_utc_iso()
        results.session.screenshots_captured = len(self._screenshots)
        path = self.results_path
        write_json(path, results.to_dict())
        self._emit(
            "session_saved",
            path=str(path),
            observations=len(self._observations),
            tasks=len(self._tasks),
            screenshots=len(self._screenshots),
        )
        self._metrics = results.session.copy()
        return path

    save = persist

    def reset(self) -> None:
        """Start a fresh session for the same persona."""
        self._start_session()


def _page_url(page: Any) -> str:
    url = getattr(page, "url", "")
    if callable(url):
        url = url()
    return str(url)
