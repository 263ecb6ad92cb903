"""Render a results artifact as a self-contained HTML report."""

from __future__ import annotations

import base64
import html
import math
from dataclasses import replace
from pathlib import Path

from .results import OBSERVATION_TYPES, PersonaTestResults, screenshot_image_bytes
from .utils import image_media_type, now_local_display, write_text


_OBSERVATION_LABELS = {
    "success": "success",
    "note": "notes",
    "confusion": "confusion",
    "frustration": "frustration",
}

_STYLE = """
    :root {
      --bg-base: #0D0F14;
      --bg-surface: #161922;
      --text-primary: #F0F2F5;
      --text-secondary: #9BA3B5;
      --text-muted: #6B7280;
      --accent-primary: #7C5CFF;
      --accent-success: #5CFFB4;
      --accent-warning: #FFC75C;
      --accent-error: #FF5C7C;
      --border-subtle: rgba(255, 255, 255, 0.08);
    }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: var(--bg-base);
      color: var(--text-primary);
      line-height: 1.6;
      padding: 2rem;
    }
    .container { max-width: 1200px; margin: 0 auto; }
    h1 { font-size: 2rem; font-weight: 700; margin-bottom: 0.5rem; color: var(--accent-primary); }
    h2 { font-size: 1.25rem; font-weight: 600; margin: 2rem 0 1rem; }
    .subtitle { color: var(--text-secondary); margin-bottom: 1rem; }
    .persona-details { display: grid; grid-template-columns: 1fr 1fr; gap: 1.5rem; margin-bottom: 2rem; }
    .persona-section h3 {
      font-size: 0.875rem; text-transform: uppercase; letter-spacing: 0.05em;
      color: var(--text-muted); margin-bottom: 0.5rem;
    }
    .persona-section ul { list-style: none; }
    .persona-section li { padding: 0.25rem 0 0.25rem 1rem; position: relative; color: var(--text-secondary); }
    .persona-section li::before { content: "\\2022"; position: absolute; left: 0; color: var(--accent-primary); }
    .card {
      background: var(--bg-surface); border-radius: 12px; padding: 1rem 1.25rem;
      margin-bottom: 0.75rem; border: 1px solid var(--border-subtle);
    }
    .metrics { display: grid; grid-template-columns: repeat(auto-fill, minmax(140px, 1fr)); gap: 1rem; margin-bottom: 2rem; }
    .metric {
      background: var(--bg-surface); border-radius: 12px; padding: 1.25rem;
      text-align: center; border: 1px solid var(--border-subtle);
    }
    .metric-value { font-size: 2rem; font-weight: 700; color: var(--accent-primary); }
    .metric-label {
      font-size: 0.75rem; text-transform: uppercase; letter-spacing: 0.05em;
      color: var(--text-secondary); margin-top: 0.25rem;
    }
    .obs-counts { display: flex; gap: 1rem; margin-bottom: 1.5rem; flex-wrap: wrap; }
    .obs-count, .badge { border-radius: 100px; font-weight: 600; }
    .obs-count { padding: 0.5rem 1rem; font-size: 0.875rem; }
    .badge {
      display: inline-block; padding: 0.25rem 0.75rem; font-size: 0.75rem;
      text-transform: uppercase; letter-spacing: 0.05em;
    }
    .obs-count--success, .badge--success { background: rgba(92, 255, 180, 0.15); color: var(--accent-success); }
    .obs-count--note, .badge--note { background: rgba(124, 92, 255, 0.15); color: var(--accent-primary); }
    .obs-count--confusion, .badge--confusion { background: rgba(255, 199, 92, 0.15); color: var(--accent-warning); }
    .obs-count--frustration, .badge--frustration { background: rgba(255, 92, 124, 0.15); color: var(--accent-error); }
    .task-header, .observation-header { display: flex; align-items: center; gap: 0.75rem; }
    .observation-header { margin-bottom: 0.5rem; }
    .task-status { font-size: 1.25rem; width: 1.5rem; }
    .task-status--success { color: var(--accent-success); }
    .task-status--failure { color: var(--accent-error); }
    .task-name { font-weight: 500; flex: 1; }
    .task-duration, .observation-location { color: var(--text-muted); font-size: 0.875rem; }
    .task-notes { color: var(--text-secondary); font-size: 0.875rem; padding-left: 2.25rem; }
    .observation-description { color: var(--text-secondary); }
    .observation-recommendation { color: var(--accent-primary); font-size: 0.875rem; margin-top: 0.5rem; font-style: italic; }
    .screenshot-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(350px, 1fr)); gap: 1.5rem; }
    .screenshot { background: var(--bg-surface); border-radius: 12px; overflow: hidden; border: 1px solid var(--border-subtle); }
    .screenshot img { width: 100%; display: block; border-bottom: 1px solid var(--border-subtle); }
    .screenshot-missing { padding: 3rem 1rem; text-align: center; color: var(--text-muted); }
    .screenshot-info { padding: 1rem; }
    .screenshot-info strong { display: block; margin-bottom: 0.25rem; }
    .screenshot-info p { color: var(--text-secondary); font-size: 0.875rem; margin-bottom: 0.5rem; }
    .screenshot-url { font-size: 0.75rem; color: var(--text-muted); font-family: monospace; }
    .footer {
      margin-top: 3rem; padding-top: 2rem; border-top: 1px solid var(--border-subtle);
      text-align: center; color: var(--text-muted); font-size: 0.875rem;
    }
    @media (max-width: 768px) {
      body { padding: 1rem; }
      .persona-details, .screenshot-grid { grid-template-columns: 1fr; }
      .obs-counts { flex-direction: column; }
    }
"""


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def observation_counts(results: PersonaTestResults) -> dict[str, int]:
    counts = {kind: 0 for kind in OBSERVATION_TYPES}
    for obs in results.observations:
        if obs.type in counts:
            counts[obs.type] += 1
    return counts


def task_success_rate(results: PersonaTestResults) -> int:
    if not results.tasks:
        return 0
    successful = sum(1 for task in results.tasks if task.success)
    # Half-up, so 5 of 8 reads as 63%.
    return math.floor(100 * successful / len(results.tasks) + 0.5)


def _metric(value: object, label: str) -> str:
    return (
        "<div class='metric'>"
        f"<div class='metric-value'>{_esc(value)}</div>"
        f"<div class='metric-label'>{label}</div>"
        "</div>"
    )


def _summary_section(results: PersonaTestResults) -> str:
    summary = results.summary
    if summary is None:
        return ""
    parts = ["<h2>Summary</h2>", "<div class='card'>"]
    if summary.overall_score:
        parts.append(f"<p><strong>Overall score:</strong> {_esc(summary.overall_score)}</p>")
    parts.append(
        f"<p>{summary.critical_issues} critical, {summary.moderate_issues} moderate, "
        f"{summary.minor_issues} minor issues</p>"
    )
    for title, items in (("Strengths", summary.strengths), ("Areas for improvement", summary.areas_for_improvement)):
        if items:
            listed = "".join(f"<li>{_esc(item)}</li>" for item in items)
            parts.append(f"<div class='persona-section'><h3>{title}</h3><ul>{listed}</ul></div>")
    parts.append("</div>")
    return "".join(parts)


def render_html(results: PersonaTestResults, *, generated_at: str | None = None) -> str:
    """Render the report. Only the footer timestamp varies between calls."""

    counts = observation_counts(results)
    session = results.session

    metrics_html = "".join(
        [
            _metric(session.pages_visited, "Pages Visited"),
            _metric(session.click_count, "Clicks"),
            _metric(session.back_nav_count, "Back Navigations"),
            _metric(len(session.console_errors), "Console Errors"),
            _metric(f"{task_success_rate(results)}%", "Task Success Rate"),
        ]
    )
    counts_html = "".join(
        f"<span class='obs-count obs-count--{kind}'>{counts[kind]} {_OBSERVATION_LABELS[kind]}</span>"
        for kind in OBSERVATION_TYPES
    )

    observation_cards = []
    for obs in results.observations:
        kind = _esc(obs.type)
        recommendation = (
            f"<p class='observation-recommendation'>Recommendation: {_esc(obs.recommendation)}</p>"
            if obs.recommendation
            else ""
        )
        observation_cards.append(
            f"<div class='card observation observation--{kind}'>"
            f"<div class='observation-header'><span class='badge badge--{kind}'>{kind}</span>"
            f"<span class='observation-location'>{_esc(obs.location)}</span></div>"
            f"<p class='observation-description'>{_esc(obs.description)}</p>"
            f"{recommendation}</div>"
        )

    task_cards = []
    for task in results.tasks:
        status = "task-status--success" if task.success else "task-status--failure"
        mark = "&#10003;" if task.success else "&#10007;"
        notes = f"<p class='task-notes'>{_esc(task.notes)}</p>" if task.notes else ""
        task_cards.append(
            f"<div class='card task'><div class='task-header'>"
            f"<span class='task-status {status}'>{mark}</span>"
            f"<span class='task-name'>{_esc(task.name)}</span>"
            f"<span class='task-duration'>{task.duration_ms / 1000:.1f}s</span>"
            f"</div>{notes}</div>"
        )

    screenshot_cards = []
    for shot in results.screenshots:
        image = screenshot_image_bytes(shot)
        if image is not None:
            media_type = image_media_type(image, filename=shot.filepath)
            visual = f"<img src='data:{media_type};base64,{shot.encoded_image}' alt='{_esc(shot.name)}' loading='lazy'>"
        else:
            visual = "<div class='screenshot-missing'>Image not embedded</div>"
        screenshot_cards.append(
            f"<div class='screenshot'>{visual}<div class='screenshot-info'>"
            f"<strong>{_esc(shot.name)}</strong><p>{_esc(shot.context)}</p>"
            f"<span class='screenshot-url'>{_esc(shot.url)}</span></div></div>"
        )

    goals_html = "".join(f"<li>{_esc(goal)}</li>" for goal in results.goals)
    behaviors_html = "".join(f"<li>{_esc(behavior)}</li>" for behavior in results.behaviors)
    stamp = generated_at if generated_at is not None else now_local_display()

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>PersonaSpec Report: {_esc(results.persona)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <h1>{_esc(results.persona)}</h1>
    <p class="subtitle">{_esc(results.background)}</p>
    <div class="persona-details">
      <div class="persona-section"><h3>Goals</h3><ul>{goals_html}</ul></div>
      <div class="persona-section"><h3>Behaviors</h3><ul>{behaviors_html}</ul></div>
    </div>
    {_summary_section(results)}
    <h2>Session Metrics</h2>
    <div class="metrics">{metrics_html}</div>
    <h2>Observations</h2>
    <div class="obs-counts">{counts_html}</div>
    {''.join(observation_cards)}
    <h2>Tasks</h2>
    {''.join(task_cards)}
    <h2>Screenshots</h2>
    <div class="screenshot-grid">{''.join(screenshot_cards)}</div>
    <div class="footer">Generated by PersonaSpec on {_esc(stamp)}</div>
  </div>
</body>
</html>
"""


def _embed_screenshot_files(results: PersonaTestResults) -> PersonaTestResults:
    # Entries captured with include_base64=False still have their file on disk.
    shots = []
    for shot in results.screenshots:
        if not shot.encoded_image:
            image = screenshot_image_bytes(shot, read_file=True)
            if image is not None:
                shot = replace(shot, encoded_image=base64.b64encode(image).decode("ascii"))
        shots.append(shot)
    return replace(results, screenshots=shots)


def write_report(results: PersonaTestResults, out_path: str | Path) -> Path:
    target = Path(out_path)
    write_text(target, render_html(_embed_screenshot_files(results)))
    return target
