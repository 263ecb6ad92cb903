from __future__ import annotations

import base64
import io
import json
from http.client import IncompleteRead
from pathlib import Path
from urllib.error import HTTPError, URLError

import pytest

from personaspec.analysis import analyze, build_message_content, select_screenshots
from personaspec.errors import ApiError, ConfigError, InputError, NetworkError
from personaspec.results import PersonaTestResults


class DummyResponse:
    def __init__(self, payload: dict, status: int = 200) -> None:
        self._payload = payload
        self.status = status

    def read(self) -> bytes:
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _screenshot(name: str) -> dict:
    return {
        "name": name,
        "context": f"{name} context",
        "url": f"https://example.test/{name}",
        "pageTitle": name.title(),
        "filepath": "",
        "base64": base64.b64encode(f"image-{name}".encode("utf-8")).decode("ascii"),
        "timestamp": "2024-01-01T00:00:00+00:00",
    }


def _artifact(screenshots: int = 0) -> dict:
    return {
        "persona": "Alex - First-Time Visitor",
        "background": "New to the site",
        "goals": ["Find pricing"],
        "behaviors": ["Skims headings"],
        "session": {"startTime": "2024-01-01T00:00:00+00:00", "pagesVisited": 1, "consoleErrors": []},
        "tasks": [{"name": "find cta", "success": False, "duration": 2500, "notes": "hidden"}],
        "observations": [
            {"type": "confusion", "description": "Two CTAs", "location": "Hero", "timestamp": "t"},
        ],
        "screenshots": [_screenshot(f"shot{i}") for i in range(screenshots)],
    }


def _install_urlopen(monkeypatch, payload: dict | None = None, error: Exception | None = None) -> list:
    requests: list = []

    def fake_urlopen(req, timeout=0):
        requests.append(req)
        if error is not None:
            raise error
        return DummyResponse(payload or {"content": [{"type": "text", "text": "## Summary\nLooks fine."}]})

    monkeypatch.setattr("personaspec.analysis.urlopen", fake_urlopen)
    return requests


def _http_error(code: int, body: dict) -> HTTPError:
    return HTTPError(
        "https://api.anthropic.com/v1/messages",
        code,
        "error",
        {},
        io.BytesIO(json.dumps(body).encode("utf-8")),
    )


def test_analyze_without_screenshots_sends_one_request(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_BASE", raising=False)
    monkeypatch.delenv("ANTHROPIC_BASE_URL", raising=False)
    requests = _install_urlopen(monkeypatch)
    out = tmp_path / "analysis.md"

    result = analyze(_artifact(), "test-key", output_path=out)

    assert result == out
    assert len(requests) == 1
    req = requests[0]
    assert req.full_url == "https://api.anthropic.com/v1/messages"
    assert req.get_header("X-api-key") == "test-key"
    assert req.get_header("Anthropic-version") == "2023-06-01"
    body = json.loads(req.data.decode("utf-8"))
    assert body["max_tokens"] == 4096
    assert "Alex - First-Time Visitor" in body["system"]
    content = body["messages"][0]["content"]
    assert not [block for block in content if block["type"] == "image"]
    assert "I have 0 screenshots" in content[0]["text"]

    markdown = out.read_text(encoding="utf-8")
    assert markdown.startswith("# PersonaSpec AI Analysis")
    assert "Looks fine." in markdown
    assert "**Screenshots Analyzed:** 0" in markdown


def test_analyze_uses_env_key_and_prefix_of_screenshots(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
    requests = _install_urlopen(monkeypatch)

    analyze(_artifact(screenshots=4), model="claude-test", max_screenshots=2, output_path=tmp_path / "a.md")

    req = requests[0]
    assert req.get_header("X-api-key") == "env-key"
    body = json.loads(req.data.decode("utf-8"))
    assert body["model"] == "claude-test"
    content = body["messages"][0]["content"]
    images = [block for block in content if block["type"] == "image"]
    assert len(images) == 2
    assert base64.b64decode(images[0]["source"]["data"]) == b"image-shot0"
    captions = [block["text"] for block in content if block["type"] == "text"]
    assert any('"shot1"' in text for text in captions)
    assert not any('"shot2"' in text for text in captions)


def test_message_content_lists_observations_and_tasks() -> None:
    results = PersonaTestResults.from_dict(_artifact())
    text = "".join(block["text"] for block in build_message_content(results, []) if block["type"] == "text")
    assert "**[CONFUSION]** Two CTAs (at Hero)" in text
    assert "✗ **find cta** (2.5s) - hidden" in text


def test_select_screenshots_takes_prefix() -> None:
    results = PersonaTestResults.from_dict(_artifact(screenshots=3))
    assert [shot.name for shot in select_screenshots(results, 2)] == ["shot0", "shot1"]
    assert len(select_screenshots(results, 10)) == 3


def test_analyze_requires_api_key(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    requests = _install_urlopen(monkeypatch)
    with pytest.raises(ConfigError) as excinfo:
        analyze(_artifact(), output_path=tmp_path / "a.md")
    assert "ANTHROPIC_API_KEY" in (excinfo.value.hint or "")
    assert requests == []


def test_analyze_rejects_missing_persona(tmp_path: Path, monkeypatch) -> None:
    requests = _install_urlopen(monkeypatch)
    payload = _artifact()
    del payload["persona"]
    out = tmp_path / "a.md"
    with pytest.raises(InputError):
        analyze(payload, "test-key", output_path=out)
    assert requests == []
    assert not out.exists()


@pytest.mark.parametrize(
    "code,fragment",
    [(401, "API key is valid"), (429, "rate limits")],
)
def test_analyze_http_errors_carry_hints(tmp_path: Path, monkeypatch, code: int, fragment: str) -> None:
    _install_urlopen(monkeypatch, error=_http_error(code, {"error": {"message": "request rejected"}}))
    out = tmp_path / "a.md"
    with pytest.raises(ApiError, match="request rejected") as excinfo:
        analyze(_artifact(), "test-key", output_path=out)
    assert excinfo.value.status == code
    assert fragment in (excinfo.value.hint or "")
    assert not out.exists()


def test_analyze_http_error_without_message(tmp_path: Path, monkeypatch) -> None:
    _install_urlopen(monkeypatch, error=_http_error(500, {}))
    with pytest.raises(ApiError, match="status 500"):
        analyze(_artifact(), "test-key", output_path=tmp_path / "a.md")


def test_analyze_network_failure(tmp_path: Path, monkeypatch) -> None:
    _install_urlopen(monkeypatch, error=URLError("connection refused"))
    out = tmp_path / "a.md"
    with pytest.raises(NetworkError) as excinfo:
        analyze(_artifact(), "test-key", output_path=out)
    assert excinfo.value.hint == "Check your internet connection."
    assert not out.exists()


def test_analyze_rejects_response_without_text(tmp_path: Path, monkeypatch) -> None:
    _install_urlopen(monkeypatch, payload={"content": [{"type": "tool_use", "id": "x"}]})
    out = tmp_path / "a.md"
    with pytest.raises(ApiError, match="Unexpected API response format"):
        analyze(_artifact(), "test-key", output_path=out)
    assert not out.exists()


def test_analyze_honours_api_base_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_BASE", "http://localhost:8080/v1/")
    requests = _install_urlopen(monkeypatch)
    analyze(_artifact(), "test-key", output_path=tmp_path / "a.md")
    assert requests[0].full_url == "http://localhost:8080/v1/messages"


class TruncatedResponse(DummyResponse):
    def read(self) -> bytes:
        raise IncompleteRead(b'{"content": [')


def test_analyze_truncated_response_is_network_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("personaspec.analysis.urlopen", lambda req, timeout=0: TruncatedResponse({}))
    out = tmp_path / "a.md"
    with pytest.raises(NetworkError) as excinfo:
        analyze(_artifact(), "test-key", output_path=out)
    assert excinfo.value.hint == "Check your internet connection."
    assert not out.exists()
