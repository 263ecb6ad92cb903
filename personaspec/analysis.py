"""AI vision analysis of a persona session.

Sends the session's screenshots plus persona context to the Anthropic Messages
API in a single request and writes the model's review as a Markdown report.
There are no retries: any failure is terminal and leaves no output file.
"""

from __future__ import annotations

import base64
import json
import os
from http.client import HTTPException
from pathlib import Path
from typing import Any, Mapping
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import ApiError, ConfigError, InputError, NetworkError
from .results import EXPECTED_SHAPE_HINT, PersonaTestResults, Screenshot, screenshot_image_bytes
from .utils import image_media_type, now_local_display, write_text


DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_API_BASE = "https://api.anthropic.com/v1"
DEFAULT_MAX_SCREENSHOTS = 10
DEFAULT_OUTPUT = "analysis-report.md"
ANTHROPIC_VERSION = "2023-06-01"
MAX_OUTPUT_TOKENS = 4096

API_KEY_HINT = (
    "Set the ANTHROPIC_API_KEY environment variable (export ANTHROPIC_API_KEY=sk-ant-...) "
    "or pass --api-key."
)


def resolve_api_key(api_key: str | None = None) -> str:
    key = (api_key or "").strip() or os.getenv("ANTHROPIC_API_KEY", "").strip()
    if not key:
        raise ConfigError("Anthropic API key required.", hint=API_KEY_HINT)
    return key


def resolve_api_base(api_base: str | None = None) -> str:
    base = api_base or os.getenv("ANTHROPIC_API_BASE") or os.getenv("ANTHROPIC_BASE_URL") or DEFAULT_API_BASE
    return base.rstrip("/")


def select_screenshots(results: PersonaTestResults, max_screenshots: int) -> list[Screenshot]:
    return list(results.screenshots[: max(0, max_screenshots)])


def build_system_prompt(results: PersonaTestResults) -> str:
    return f"""You are a UX analyst reviewing screenshots from a persona-driven user journey test.

## The Persona

**Name:** {results.persona}
**Background:** {results.background}
**Goals:** {', '.join(results.goals)}
**Behaviors:** {', '.join(results.behaviors)}

## Your Task

Analyze each screenshot from the perspective of this specific persona. Consider their background, goals, and typical behaviors when identifying issues.

For each screenshot, identify:
1. **UX Issues** - Things that would frustrate or confuse this persona specifically
2. **Accessibility Problems** - Visual accessibility issues (contrast, text size, etc.)
3. **Design Inconsistencies** - Layout, spacing, or styling issues
4. **Goal Achievement** - Whether the persona could accomplish their goals from this screen
5. **Specific Recommendations** - Concrete, actionable improvements

## Output Format

Structure your analysis as markdown with:
1. An executive summary (2-3 sentences)
2. Analysis of each screenshot
3. Prioritized recommendations (Critical / Important / Nice-to-have)
4. Overall score (A/B/C/D/F) with justification"""


def build_message_content(results: PersonaTestResults, screenshots: list[Screenshot]) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = [
        {
            "type": "text",
            "text": (
                f"I have {len(screenshots)} screenshots from a persona-driven test session. "
                "Please analyze each one from the perspective of the persona described in your instructions.\n\n"
            ),
        }
    ]

    for shot in screenshots:
        image = screenshot_image_bytes(shot, read_file=True)
        if image is None:
            continue
        content.append(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image_media_type(image, filename=shot.filepath),
                    "data": base64.b64encode(image).decode("ascii"),
                },
            }
        )
        content.append(
            {
                "type": "text",
                "text": f'\n**Screenshot: "{shot.name}"**\nContext: {shot.context}\nURL: {shot.url}\n\n',
            }
        )

    if results.observations:
        lines = "\n".join(
            f"- **[{obs.type.upper()}]** {obs.description} (at {obs.location})" for obs in results.observations
        )
        content.append(
            {
                "type": "text",
                "text": (
                    "\n## Observations Already Captured During Testing\n\n"
                    "The automated tests already identified these observations:\n\n"
                    f"{lines}\n\n"
                    "Please validate these observations and identify anything they may have missed."
                ),
            }
        )

    if results.tasks:
        lines = "\n".join(
            f"- {'✓' if task.success else '✗'} **{task.name}** ({task.duration_ms / 1000:.1f}s) - {task.notes}"
            for task in results.tasks
        )
        content.append({"type": "text", "text": f"\n## Task Results\n\n{lines}"})

    return content


def build_request_payload(results: PersonaTestResults, screenshots: list[Screenshot], *, model: str) -> dict[str, Any]:
    return {
        "model": model,
        "max_tokens": MAX_OUTPUT_TOKENS,
        "system": build_system_prompt(results),
        "messages": [{"role": "user", "content": build_message_content(results, screenshots)}],
    }


def _error_message(status: int, raw: str) -> str:
    try:
        parsed = json.loads(raw or "{}")
    except ValueError:
        parsed = {}
    error = parsed.get("error") if isinstance(parsed, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"].strip():
        return error["message"].strip()
    return f"API request failed with status {status}"


def _status_hint(status: int) -> str | None:
    if status == 401:
        return "Check that your API key is valid and has not expired."
    if status == 429:
        return "You may have hit rate limits. Try again in a few seconds."
    return None


def post_messages(
    url: str,
    payload: Mapping[str, Any],
    api_key: str,
    *,
    timeout_s: float = 120.0,
) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req = Request(
        url,
        data=body,
        headers={
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        },
        method="POST",
    )
    try:
        with urlopen(req, timeout=timeout_s) as response:
            status = int(getattr(response, "status", 200))
            raw = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        raw = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        raise ApiError(_error_message(exc.code, raw), status=exc.code, hint=_status_hint(exc.code)) from exc
    except (URLError, HTTPException, TimeoutError, ConnectionError) as exc:
        raise NetworkError(
            f"Network request failed: {getattr(exc, 'reason', exc)}",
            hint="Check your internet connection.",
        ) from exc
    if status < 200 or status >= 300:
        raise ApiError(_error_message(status, raw), status=status, hint=_status_hint(status))
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise ApiError("Unexpected API response format", status=status) from exc
    if not isinstance(parsed, dict):
        raise ApiError("Unexpected API response format", status=status)
    return parsed


def extract_text(response: Mapping[str, Any]) -> str:
    content = response.get("content")
    if not isinstance(content, list):
        return ""
    parts = [
        item["text"]
        for item in content
        if isinstance(item, dict) and item.get("type", "text") == "text" and isinstance(item.get("text"), str)
    ]
    return "\n\n".join(part for part in parts if part.strip())


def build_markdown(
    results: PersonaTestResults,
    analysis: str,
    *,
    model: str,
    screenshots_analyzed: int,
    generated_at: str | None = None,
) -> str:
    goals = "\n".join(f"- {goal}" for goal in results.goals)
    behaviors = "\n".join(f"- {behavior}" for behavior in results.behaviors)
    session = results.session
    stamp = generated_at if generated_at is not None else now_local_display()
    return f"""# PersonaSpec AI Analysis

## Persona: {results.persona}

**Background:** {results.background}

**Goals:**
{goals}

**Behaviors:**
{behaviors}

---

## Session Summary

- **Pages Visited:** {session.pages_visited}
- **Clicks:** {session.click_count}
- **Back Navigations:** {session.back_nav_count}
- **Console Errors:** {len(session.console_errors)}
- **Screenshots Analyzed:** {screenshots_analyzed}

---

{analysis}

---

*Generated by PersonaSpec using {model} on {stamp}*
"""


def analyze(
    results: PersonaTestResults | Mapping[str, Any],
    api_key: str | None = None,
    *,
    model: str = DEFAULT_MODEL,
    max_screenshots: int = DEFAULT_MAX_SCREENSHOTS,
    output_path: str | Path = DEFAULT_OUTPUT,
    api_base: str | None = None,
    timeout_s: float = 120.0,
) -> Path:
    """Run one analysis request and write the Markdown report to ``output_path``."""

    key = resolve_api_key(api_key)
    if not isinstance(results, PersonaTestResults):
        results = PersonaTestResults.from_dict(results, require=("persona", "screenshots"))
    elif not results.persona.strip():
        raise InputError("Invalid PersonaSpec results: missing persona", hint=EXPECTED_SHAPE_HINT)

    screenshots = select_screenshots(results, max_screenshots)
    payload = build_request_payload(results, screenshots, model=model)
    response = post_messages(f"{resolve_api_base(api_base)}/messages", payload, key, timeout_s=timeout_s)
    text = extract_text(response)
    if not text:
        raise ApiError("Unexpected API response format")

    target = Path(output_path)
    write_text(target, build_markdown(results, text, model=model, screenshots_analyzed=len(screenshots)))
    return target
