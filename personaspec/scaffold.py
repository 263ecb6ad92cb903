"""Project scaffolding for ``personaspec init``.

Writes a pytest + Playwright-for-Python layout that drives one persona through
a serial session and persists the collector's artifact at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from . import templates
from .errors import ArtifactIOError, ValidationError
from .utils import write_text


SCAFFOLD_DIRS = ("tests/personas", "test-results")

CONFTEST_TEMPLATE = '''"""Fixtures for persona-driven sessions.

Tests in this directory run in file order against one shared collector, so a
module reads as one continuous persona journey.
"""

import os

import pytest
from playwright.sync_api import sync_playwright

from personaspec import CollectorConfig, ObservationCollector, templates

BASE_URL = os.getenv("BASE_URL", "http://localhost:3000")

# Override any template field, e.g. goals=["Find pricing", "Understand the product"].
PERSONA = templates.get("{template}")


@pytest.fixture(scope="session")
def collector():
    collector = ObservationCollector(CollectorConfig(output_dir="test-results", persona=PERSONA))
    yield collector
    path = collector.persist()
    print(f"Observations saved to: {{path}}")


@pytest.fixture(scope="session")
def browser():
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch()
        yield browser
        browser.close()


@pytest.fixture(scope="session")
def page(browser, collector):
    page = browser.new_page(base_url=BASE_URL, viewport={{"width": 1280, "height": 720}})
    collector.track_viewport("1280x720")

    def on_console(message):
        if message.type == "error":
            collector.log_console_error(message.text)

    page.on("console", on_console)
    yield page
    page.close()
'''

EXAMPLE_TEST_TEMPLATE = '''"""Persona session: {persona}.

{background}
"""

import re


def test_understand_site_purpose(page, collector):
    collector.start_task()
    page.goto("/")
    collector.track_page_load()
    collector.capture(page, "homepage-initial", "First view of the homepage")

    headline = page.locator("h1").first
    text = headline.text_content() if headline.count() else ""
    if text and text.strip():
        collector.record("success", f'Clear headline: "{{text.strip()}}"', "Homepage hero")
    else:
        collector.record("confusion", "No clear headline found", "Homepage", severity="moderate")

    collector.finish_task("understand site purpose", bool(text and text.strip()), text or "No headline found")
    assert text and text.strip()


def test_find_getting_started(page, collector):
    collector.start_task()
    cta = page.get_by_role("link", name=re.compile(r"get started|sign up|try|start", re.I)).first
    found = cta.count() > 0 and cta.is_visible()
    if found:
        collector.record("success", f'Found CTA: "{{cta.text_content()}}"', "Homepage")
        cta.click()
        collector.track_click()
        collector.track_page_load()
        collector.capture(page, "after-cta-click", "After clicking the main CTA")
    else:
        collector.record(
            "frustration",
            "Could not find a clear call-to-action",
            "Homepage",
            severity="critical",
            recommendation="Add a prominent primary button above the fold",
        )
        collector.capture(page, "no-cta-found", "Unable to locate getting started button")
    collector.finish_task("find getting started", found, "CTA found and clicked" if found else "No CTA found")


def test_find_help(page, collector):
    collector.start_task()
    page.goto("/")
    collector.track_page_load()
    help_link = page.get_by_role("link", name=re.compile(r"docs|documentation|help|support|guide", re.I)).first
    found = help_link.count() > 0 and help_link.is_visible()
    if found:
        collector.record("success", f'Found help link: "{{help_link.text_content()}}"', "Navigation")
    else:
        collector.record("note", "Help/documentation link not immediately visible", "Navigation")
    collector.capture(page, "help-search", "Looking for help/documentation")
    collector.finish_task("find help or documentation", found, "Help link found" if found else "Help link not found")
'''

GITIGNORE_BLOCK = """
# PersonaSpec test results
test-results/
*-observations.json
"""


@dataclass
class ScaffoldResult:
    created: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    gitignore_updated: bool = False


def scaffold_files(template: str) -> dict[str, str]:
    persona = templates.get(template)
    return {
        "tests/personas/conftest.py": CONFTEST_TEMPLATE.format(template=template),
        f"tests/personas/test_{template}.py": EXAMPLE_TEST_TEMPLATE.format(
            persona=persona.identity,
            background=persona.background,
        ),
    }


def scaffold_project(
    root: str | Path,
    *,
    template: str = "first_time_visitor",
    force: bool = False,
    update_gitignore: bool = True,
) -> ScaffoldResult:
    if template not in templates.TEMPLATES:
        raise ValidationError(
            f"Unknown persona template: {template}",
            hint=f"Available templates: {', '.join(templates.names())}",
        )
    base = Path(root)
    result = ScaffoldResult()
    for rel in SCAFFOLD_DIRS:
        directory = base / rel
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactIOError(f"Could not create {directory}: {exc.strerror or exc}", path=directory) from exc

    for rel, content in scaffold_files(template).items():
        path = base / rel
        if path.exists() and not force:
            result.skipped.append(path)
            continue
        write_text(path, content)
        result.created.append(path)

    gitignore = base / ".gitignore"
    if update_gitignore and gitignore.exists():
        result.gitignore_updated = _append_gitignore(gitignore)
    return result


def _append_gitignore(gitignore: Path) -> bool:
    try:
        existing = gitignore.read_text(encoding="utf-8")
        if "test-results/" in existing:
            return False
        with gitignore.open("a", encoding="utf-8") as handle:
            handle.write(GITIGNORE_BLOCK)
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactIOError(
            f"Could not update {gitignore}: {exc}",
            path=gitignore,
            hint="Fix the file or rerun with --skip-gitignore.",
        ) from exc
    return True
