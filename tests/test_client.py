import asyncio
import itertools

import httpx
import pytest

from journal_api.client.api import APIError, JournalAPIClient
from journal_api.client.autosave import AutosaveController
from journal_api.client.debounce import Debouncer
from journal_api.client.session import EditorSession
from journal_api.client.suggestions import PromptSuggestionController, SuggestionState, UsageSnapshot

DELAY = 0.02
TEXT = "Walking home tonight I noticed how quiet my thoughts were for once, and it felt good."


class FakeAPI:
    def __init__(self):
        self.calls = []
        self.prompt_error = None
        self.save_error = None
        self.prompt_text = "What made the quiet feel possible tonight?"
        self._ids = itertools.count(1)

    async def create_entry(self, content):
        self.calls.append(("create", content))
        if self.save_error:
            raise self.save_error
        return {"id": f"entry-{next(self._ids)}", "content": content}

    async def update_entry(self, entry_id, content):
        self.calls.append(("update", entry_id, content))
        if self.save_error:
            raise self.save_error
        return {"id": entry_id, "content": content}

    async def get_entry(self, entry_id):
        return {"id": entry_id, "content": "Existing words"}

    async def generate_prompt(self, content, entry_id=None):
        self.calls.append(("prompt", content, entry_id))
        if self.prompt_error:
            raise self.prompt_error
        return {"prompt_text": self.prompt_text, "id": "3f2c9a8e-5b1d-4c6e-9f0a-7d8e1b2c3a4f", "created_at": "2026-01-01T00:00:00Z"}

    async def get_usage(self):
        return {"subscription_status": "free", "prompts_used": 3, "prompts_limit": 10}

    def of(self, kind):
        return [c for c in self.calls if c[0] == kind]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


# Debouncer

async def test_debouncer_fires_once_after_quiet_period():
    fired = []

    async def callback():
        fired.append(True)

    debouncer = Debouncer(0.2, callback)
    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0.01)
    await debouncer.wait()

    assert fired == [True]
    assert not debouncer.pending


async def test_debouncer_cancel():
    fired = []

    async def callback():
        fired.append(True)

    debouncer = Debouncer(DELAY, callback)
    debouncer.trigger()
    debouncer.cancel()
    await asyncio.sleep(DELAY * 2)

    assert fired == []


async def test_debouncer_does_not_cancel_running_callback():
    finished = []
    started = asyncio.Event()

    async def callback():
        started.set()
        await asyncio.sleep(DELAY * 2)
        finished.append(True)

    debouncer = Debouncer(DELAY, callback)
    debouncer.trigger()
    await started.wait()
    debouncer.trigger()
    debouncer.cancel()
    await debouncer.wait()

    assert finished == [True]


# Autosave

async def test_autosave_creates_then_updates():
    api = FakeAPI()
    navigated = []
    autosave = AutosaveController(api, delay=DELAY, on_navigate=navigated.append)

    autosave.content_changed("Dear diary")
    await autosave.wait()
    autosave.content_changed("Dear diary, today")
    await autosave.wait()

    assert api.calls == [("create", "Dear diary"), ("update", "entry-1", "Dear diary, today")]
    assert navigated == ["entry-1"]
    assert not autosave.dirty


async def test_autosave_debounces_keystrokes():
    api = FakeAPI()
    autosave = AutosaveController(api, delay=DELAY)

    for text in ("D", "De", "Dea", "Dear"):
        autosave.content_changed(text)
    await autosave.wait()

    assert api.calls == [("create", "Dear")]


async def test_autosave_skips_blank_and_unchanged():
    api = FakeAPI()
    autosave = AutosaveController(api, delay=DELAY)
    autosave.load({"id": "entry-9", "content": "Saved already"})

    autosave.content_changed("   ")
    await autosave.wait()
    autosave.content_changed("Saved already")
    await autosave.wait()

    assert api.calls == []


async def test_save_now_skips_debounce():
    api = FakeAPI()
    autosave = AutosaveController(api, delay=10)

    autosave.content_changed("Quick thought")
    await autosave.save_now()

    assert api.calls == [("create", "Quick thought")]
    assert not autosave._debouncer.pending


async def test_autosave_failure_is_exposed_and_retried():
    api = FakeAPI()
    api.save_error = APIError(500, "Database operation failed", "ERR_2000")
    autosave = AutosaveController(api, delay=DELAY)

    autosave.content_changed("Important")
    await autosave.wait()
    assert autosave.last_error == "Database operation failed"
    assert autosave.dirty

    api.save_error = None
    autosave.content_changed("Important!")
    await autosave.wait()
    assert autosave.last_error is None
    assert api.of("create")[-1] == ("create", "Important!")


async def test_concurrent_saves_never_create_twice():
    api = FakeAPI()
    autosave = AutosaveController(api, delay=DELAY)

    autosave.content_changed("First")
    await asyncio.gather(autosave.save_now(), autosave.save_now())
    autosave.content_changed("First and second")
    await autosave.save_now()

    assert len(api.of("create")) == 1
    assert api.of("update") == [("update", "entry-1", "First and second")]


# Suggestions

async def test_controller_requests_and_shows_prompt():
    api = FakeAPI()
    transitions = []
    controller = PromptSuggestionController(
        api, delay=DELAY, clock=FakeClock(), entry_id="entry-1", on_transition=transitions.append
    )

    controller.content_changed(TEXT)
    await controller.wait()

    assert api.of("prompt") == [("prompt", TEXT, "entry-1")]
    assert controller.state is SuggestionState.SHOWING
    assert controller.prompt == api.prompt_text
    assert controller.usage.prompts_used == 1
    assert transitions[-1].usage.prompts_used == 1


async def test_controller_short_text_never_requests():
    api = FakeAPI()
    controller = PromptSuggestionController(api, delay=DELAY, clock=FakeClock())

    controller.content_changed("short")
    await asyncio.sleep(DELAY * 2)
    await controller.wait()

    assert api.of("prompt") == []


async def test_controller_rate_limit_error_suppresses_retry():
    api = FakeAPI()
    api.prompt_error = APIError(429, "The AI service is receiving too many requests.", "ERR_4002")
    clock = FakeClock()
    controller = PromptSuggestionController(api, delay=DELAY, clock=clock)

    controller.content_changed(TEXT)
    await controller.wait()
    assert controller.state is SuggestionState.ERRORED
    assert controller.error == "The AI service is receiving too many requests."

    clock.now += 60
    controller.content_changed(TEXT)
    await controller.wait()
    assert len(api.of("prompt")) == 1


async def test_controller_network_error_is_reported():
    api = FakeAPI()
    api.prompt_error = httpx.ConnectError("unreachable")
    controller = PromptSuggestionController(api, delay=DELAY, clock=FakeClock())

    controller.content_changed(TEXT)
    await controller.wait()

    assert controller.state is SuggestionState.ERRORED
    assert controller.error == "Failed to generate prompt"


async def test_controller_refresh_usage():
    api = FakeAPI()
    controller = PromptSuggestionController(api, delay=DELAY)
    await controller.refresh_usage()
    assert controller.usage == UsageSnapshot("free", 3, 10)


# Editor session

async def test_session_autosaves_and_suggests_against_new_entry():
    api = FakeAPI()
    navigated = []
    session = EditorSession(
        api,
        on_navigate=navigated.append,
        autosave_delay=DELAY,
        suggestion_delay=DELAY * 3,
        clock=FakeClock(),
    )

    session.type(TEXT)
    await session.autosave.wait()
    await session.suggestions.wait()

    assert api.of("create") == [("create", TEXT)]
    assert navigated == ["entry-1"]
    # Autosave finished first, so the prompt is stored against the new entry
    assert api.of("prompt") == [("prompt", TEXT, "entry-1")]


async def test_session_accept_prompt_saves_new_content():
    api = FakeAPI()
    session = EditorSession(api, autosave_delay=DELAY, suggestion_delay=DELAY * 2, clock=FakeClock())

    session.type(TEXT)
    await session.suggestions.wait()
    content = session.accept_prompt()
    await session.close()

    assert content == TEXT + "\n\n" + api.prompt_text + "\n\n"
    assert session.content == content
    assert api.calls[-1] == ("update", "entry-1", content)
    assert len(api.of("prompt")) == 1


async def test_session_open_existing_entry():
    api = FakeAPI()
    session = await EditorSession.open(api, entry_id="entry-7", autosave_delay=DELAY)

    assert session.entry_id == "entry-7"
    assert session.content == "Existing words"
    assert session.suggestions.usage.prompts_used == 3
    assert session.suggestions.machine.text == "Existing words"


# HTTP client

async def test_api_client_raises_api_error_from_envelope():
    def handler(request):
        assert request.headers["authorization"] == "Bearer tok"
        return httpx.Response(402, json={"error": "Upgrade to Premium", "code": "ERR_3000"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api")
    api = JournalAPIClient(token="tok", client=http)

    with pytest.raises(APIError) as exc_info:
        await api.generate_prompt(TEXT)

    assert exc_info.value.status_code == 402
    assert exc_info.value.code == "ERR_3000"
    assert exc_info.value.suppresses_retry
    await http.aclose()


async def test_api_client_posts_to_prompt_route():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={"prompt_text": "Why?", "id": "3f2c9a8e-5b1d-4c6e-9f0a-7d8e1b2c3a4f", "created_at": "2026-01-01T00:00:00Z"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api")
    async with JournalAPIClient(client=http) as api:
        result = await api.generate_prompt(TEXT)

    assert seen["path"] == "/api/prompts/generate"
    assert result["prompt_text"] == "Why?"
    await http.aclose()


def test_server_errors_do_not_suppress_retry():
    assert not APIError(502, "Gemini error").suppresses_retry


async def test_api_client_searches_entries():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"entries": [{"id": "e1", "content": "work"}], "total_count": 1})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api")
    api = JournalAPIClient(client=http)

    assert await api.list_entries(q="work") == [{"id": "e1", "content": "work"}]
    await api.list_entries()

    assert seen == [{"q": "work"}, {}]
    await http.aclose()
