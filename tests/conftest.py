import asyncio
import sys
from pathlib import Path
import json
import pytest

# Ensure repo root is on sys.path so `import podcaster...` works in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from podcaster.audio.stitcher import ConcatStitcher
from podcaster.audio.storage import AudioStore
from podcaster.core.errors import ScraperError
from podcaster.jobs.store import JobStore
from podcaster.pipeline.orchestrator import PodcastPipeline
from podcaster.scraper.extractor import ScrapeResult


ARTICLE_TITLE = "Scraped Title"
ARTICLE_TEXT = "First paragraph about tides.\n\nSecond paragraph about the moon."

SUMMARY = {
    "title": "Tides Explained",
    "summaryPoints": ["Tides follow the moon.", "There are two tides a day."],
    "keyTopics": ["tides", "moon"],
    "estimatedDurationMinutes": 3,
}


def dialogue(*texts, speakers=("Ash", "Jenny")):
    """Dialogue payload with one segment per text, speakers alternating."""
    return {
        "title": "Tides Talk",
        "segments": [{"speaker": speakers[i % len(speakers)], "text": t} for i, t in enumerate(texts)],
    }


class FakeScraper:
    def __init__(self, result=None, error=None):
        self.result = result or ScrapeResult(title=ARTICLE_TITLE, body_text=ARTICLE_TEXT)
        self.error = error
        self.calls = []

    async def extract(self, url):
        self.calls.append(url)
        if self.error:
            raise self.error
        return self.result


class FakeGenerator:
    """Returns `summary` for summary prompts and `dialogue` for dialogue prompts (schema mentions segments). Either may be an exception."""

    def __init__(self, summary=None, dialogue=None):
        self.summary = SUMMARY if summary is None else summary
        self.dialogue = dialogue
        self.calls = []

    async def generate_json(self, prompt, schema_description=None, system_prompt=None):
        kind = "dialogue" if "segments" in (schema_description or "") else "summary"
        self.calls.append((kind, prompt))
        value = self.dialogue if kind == "dialogue" else self.summary
        if isinstance(value, BaseException):
            raise value
        return value


class FakeSynthesizer:
    """Audio is b"<text>". delays/failures are keyed by segment text."""

    def __init__(self, delays=None, failures=None):
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls = []

    async def synthesize(self, text, voice):
        self.calls.append((text, voice))
        await asyncio.sleep(self.delays.get(text, 0))
        if text in self.failures:
            raise self.failures[text]
        return f"<{text}>".encode("utf-8")


def make_pipeline(tmp_path, scraper=None, generator=None, synthesizer=None, stitcher=None):
    data_root = str(tmp_path / "data")
    store = JobStore(data_root)
    audio_store = AudioStore(data_root, base_url="/podcasts")
    return PodcastPipeline(
        store=store,
        audio_store=audio_store,
        scraper=scraper or FakeScraper(),
        generator=generator or FakeGenerator(dialogue=dialogue("Hello", "Hi")),
        synthesizer=synthesizer or FakeSynthesizer(),
        stitcher=stitcher or ConcatStitcher(),
    )


def run_job(pipeline, url="https://example.com/article", user_id="user-1", option="RETAIN"):
    """Submit one job, wait for the bus to settle and return the final job record."""
    async def go():
        job = await pipeline.submit(url, user_id, option)
        await pipeline.drain()
        return pipeline.store.get(job.job_id)

    return asyncio.run(go())


def record_events(bus, *events):
    """Subscribe a recorder to each event; returns {event: [payloads]}."""
    seen = {e: [] for e in events}
    for e in events:
        bus.subscribe(e, seen[e].append)
    return seen


@pytest.fixture
def scraper():
    return FakeScraper()


@pytest.fixture
def invalid_url_scraper():
    return FakeScraper(error=ScraperError("Invalid URL format: notaurl", "INVALID_URL"))


def pretty_json(obj) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, sort_keys=True)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """
    Attach request/response payloads into pytest-html report.

    In tests, store payloads like:
      request_log = {"method": "...", "url": "...", "json": {...}}
      response_log = {"status_code": 200, "json": {...}}
      item._api_logs = [{"title": "...", "request": ..., "response": ...}, ...]
    """
    outcome = yield
    rep = outcome.get_result()

    if rep.when != "call":
        return

    api_logs = getattr(item, "_api_logs", None)
    if not api_logs:
        return

    # Only attach if pytest-html is installed/enabled
    extras = getattr(rep, "extras", [])

    try:
        from pytest_html import extras as html_extras
    except ImportError:
        rep.extras = extras
        return

    for entry in api_logs:
        title = entry.get("title", "API Call")
        req = entry.get("request", {})
        res = entry.get("response", {})

        html = f"""
        <div style="font-family: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, 'Liberation Mono', monospace;">
          <h4 style="margin:8px 0;">{title}</h4>

          <details style="margin:6px 0;">
            <summary><b>Request</b></summary>
            <pre style="background:#0b1020;color:#cfe3ff;padding:10px;border-radius:8px;overflow:auto;">{pretty_json(req)}</pre>
          </details>

          <details style="margin:6px 0;">
            <summary><b>Response</b></summary>
            <pre style="background:#0b1020;color:#cfe3ff;padding:10px;border-radius:8px;overflow:auto;">{pretty_json(res)}</pre>
          </details>
        </div>
        """
        extras.append(html_extras.html(html))

    rep.extras = extras
