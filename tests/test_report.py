from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path

from PIL import Image

from personaspec.report import render_html, task_success_rate, write_report
from personaspec.results import (
    Observation,
    PersonaTestResults,
    Screenshot,
    SessionMetrics,
    TaskResult,
    TestSummary,
)


def _png_bytes() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), (124, 92, 255)).save(buf, format="PNG")
    return buf.getvalue()


def _results(**overrides) -> PersonaTestResults:
    fields = {
        "persona": "Alex - First-Time Visitor",
        "background": "New to the site",
        "goals": ["Find pricing"],
        "behaviors": ["Skims headings"],
        "session": SessionMetrics(start_time="2024-01-01T00:00:00+00:00", pages_visited=2, click_count=3),
    }
    fields.update(overrides)
    return PersonaTestResults(**fields)


def _task(success: bool, duration_ms: int = 1000) -> TaskResult:
    return TaskResult(name="task", success=success, duration_ms=duration_ms, notes="")


def _obs(kind: str, description: str = "desc", **kwargs) -> Observation:
    return Observation(type=kind, description=description, location="Hero", timestamp="t", **kwargs)


def test_html_escapes_user_text() -> None:
    results = _results(observations=[_obs("confusion", "<script>alert(1)</script>")])
    html = render_html(results, generated_at="2024-01-01 00:00:00")
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<script>alert(1)</script>" not in html


def test_html_escapes_quotes_and_ampersands() -> None:
    obs = Observation(
        type="note",
        description='Tom & Jerry\'s "pricing"',
        location='Nav "top" & \'side\'',
        timestamp="t",
        recommendation='Rename "Plans" & \'Tiers\'',
    )
    html = render_html(_results(observations=[obs]), generated_at="x")
    assert "Tom &amp; Jerry&#x27;s &quot;pricing&quot;" in html
    assert "Nav &quot;top&quot; &amp; &#x27;side&#x27;" in html
    assert "Rename &quot;Plans&quot; &amp; &#x27;Tiers&#x27;" in html
    assert '"pricing"' not in html
    assert "'side'" not in html


def test_render_is_deterministic_with_fixed_stamp() -> None:
    results = _results(tasks=[_task(True, 1234)], observations=[_obs("note")])
    first = render_html(results, generated_at="2024-01-01 00:00:00")
    second = render_html(results, generated_at="2024-01-01 00:00:00")
    assert first == second
    assert "Generated by PersonaSpec on 2024-01-01 00:00:00" in first
    assert "1.2s" in first


def test_success_rate_without_tasks_is_zero() -> None:
    results = _results()
    assert task_success_rate(results) == 0
    assert ">0%<" in render_html(results, generated_at="x")


def test_success_rate_rounds_half_up() -> None:
    assert task_success_rate(_results(tasks=[_task(True)] * 5 + [_task(False)] * 3)) == 63
    assert task_success_rate(_results(tasks=[_task(True), _task(False)])) == 50
    assert task_success_rate(_results(tasks=[_task(True)] * 2 + [_task(False)])) == 67


def test_observation_counts_and_badges() -> None:
    results = _results(
        observations=[
            _obs("success"),
            _obs("success"),
            _obs("frustration", recommendation="Add a CTA"),
        ]
    )
    html = render_html(results, generated_at="x")
    assert "2 success" in html
    assert "0 notes" in html
    assert "1 frustration" in html
    assert "badge--frustration" in html
    assert "Recommendation: Add a CTA" in html


def test_screenshot_embedded_as_data_uri() -> None:
    encoded = base64.b64encode(_png_bytes()).decode("ascii")
    shot = Screenshot(
        name="home",
        context="First view",
        url="https://example.test/",
        page_title="Home",
        filepath="",
        encoded_image=encoded,
        timestamp="t",
    )
    html = render_html(_results(screenshots=[shot]), generated_at="x")
    assert f"data:image/png;base64,{encoded}" in html


def test_screenshot_without_image_shows_placeholder() -> None:
    shot = Screenshot(
        name="home",
        context="First view",
        url="https://example.test/",
        page_title="Home",
        filepath="",
        encoded_image="",
        timestamp="t",
    )
    html = render_html(_results(screenshots=[shot]), generated_at="x")
    assert "Image not embedded" in html


def test_summary_section_only_when_present() -> None:
    assert "<h2>Summary</h2>" not in render_html(_results(), generated_at="x")
    summary = TestSummary(overall_score="B+", strengths=("Fast",), critical_issues=1)
    html = render_html(_results(summary=summary), generated_at="x")
    assert "<h2>Summary</h2>" in html
    assert "B+" in html
    assert "1 critical" in html


def test_write_report_reads_screenshot_files(tmp_path: Path) -> None:
    image_path = tmp_path / "screenshots" / "home.png"
    image_path.parent.mkdir()
    image_bytes = _png_bytes()
    image_path.write_bytes(image_bytes)
    shot = Screenshot(
        name="home",
        context="First view",
        url="https://example.test/",
        page_title="Home",
        filepath=str(image_path),
        encoded_image="",
        timestamp="t",
    )

    out = write_report(_results(screenshots=[shot]), tmp_path / "reports" / "report.html")

    assert out.exists()
    html = out.read_text(encoding="utf-8")
    assert base64.b64encode(image_bytes).decode("ascii") in html
    assert "Image not embedded" not in html
