from __future__ import annotations

import pytest

from player.config import PlayerSettings, settings_from_env
from player.events import HttpEventRecorder, NullEventRecorder, RedisStreamEventRecorder
from player.loader import HttpExplorationLoader
from player.render import ResponseRenderer, camel_case_to_hyphens, obj_to_escaped_json
from player.services import build_services, close_services, get_services, init_services, reset_services_for_tests


@pytest.mark.parametrize(
    ("name", "expected"),
    [("TextInput", "text-input"), ("MultipleChoiceInput", "multiple-choice-input"), ("placeholder", "placeholder")],
)
def test_camel_case_to_hyphens(name: str, expected: str) -> None:
    assert camel_case_to_hyphens(name) == expected


def test_obj_to_escaped_json_escapes_quotes_and_markup() -> None:
    assert obj_to_escaped_json('<b>"hi"</b>') == "&quot;&lt;b&gt;\\&quot;hi\\&quot;&lt;/b&gt;&quot;"


def test_reader_response_without_choices() -> None:
    html = ResponseRenderer().reader_response_html(widget_id="TextInput", answer="yes", is_sticky=False)

    assert html == (
        '<oppia-response-text-input answer="&quot;yes&quot;" state-sticky="false"></oppia-response-text-input>'
    )


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("PLAYER_SERVER_URL", "PLAYER_HTTP_TIMEOUT_S", "PLAYER_EVENT_SINK", "PLAYER_LOG_LEVEL", "REDIS_URL", "PLAYER_SESSION_IDLE_S"):
        monkeypatch.delenv(var, raising=False)

    settings = settings_from_env()

    assert settings.server_url == "http://localhost:8181"
    assert settings.http_timeout_s == 10.0
    assert settings.event_sink == "http"
    assert settings.log_level == "INFO"
    assert settings.redis_url == "redis://localhost:6379/0"
    assert settings.session_idle_s == 3600.0


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLAYER_SERVER_URL", "http://oppia:9000")
    monkeypatch.setenv("PLAYER_HTTP_TIMEOUT_S", "2.5")
    monkeypatch.setenv("PLAYER_EVENT_SINK", "Redis")
    monkeypatch.setenv("PLAYER_LOG_LEVEL", "debug")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
    monkeypatch.setenv("PLAYER_SESSION_IDLE_S", "90")

    settings = settings_from_env()

    assert settings.server_url == "http://oppia:9000"
    assert settings.http_timeout_s == 2.5
    assert settings.event_sink == "redis"
    assert settings.log_level == "DEBUG"
    assert settings.redis_url == "redis://cache:6379/2"
    assert settings.session_idle_s == 90.0


def test_unknown_event_sink_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLAYER_EVENT_SINK", "kafka")

    with pytest.raises(RuntimeError):
        settings_from_env()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("sink", "recorder"),
    [("http", HttpEventRecorder), ("redis", RedisStreamEventRecorder), ("none", NullEventRecorder)],
)
async def test_services_pick_event_sink(sink: str, recorder: type) -> None:
    services = build_services(
        PlayerSettings(server_url="http://oppia.test", http_timeout_s=1.0, event_sink=sink, log_level="INFO")  # type: ignore[arg-type]
    )
    try:
        assert isinstance(services.events, recorder)
        assert isinstance(services.loader, HttpExplorationLoader)
        assert services.http_client is not None
        assert services.http_client.base_url.host == "oppia.test"
    finally:
        assert services.http_client is not None
        await services.http_client.aclose()


@pytest.mark.asyncio
async def test_services_are_cached_until_closed() -> None:
    reset_services_for_tests()
    settings = PlayerSettings(server_url="http://oppia.test", http_timeout_s=1.0, event_sink="none", log_level="INFO")

    first = init_services(settings)
    assert init_services(settings) is first
    assert get_services() is first

    await close_services()
    with pytest.raises(RuntimeError):
        get_services()
