"""
Tests for the QtWebEngine adapter.

Tests cover:
- Bootstrap page contents
- JavaScript calls queued until the page has loaded
- Snapshots pushed by the page reaching the player before its hooks run
- One-time loading of the API script and its failure paths
"""
import asyncio
import json
import logging

import pytest
from PySide6.QtCore import QByteArray, QObject, Signal
from PySide6.QtNetwork import QNetworkReply

from adapters.player.youtube_iframe import (WebEngineEnvironment, YoutubeIframeCapability,
                                            build_embed_html, friendly_error)
from app.capability_loader import CapabilityLoader
from app.controller import PlaybackController
from app.events import PlaybackChangeEvent, ProgressEvent
from domain.models import NativePlayerState, PlayerOptions
from fakes import FakeEnvironment

API_URL = "https://example.test/iframe_api"


class FakePage:
    def __init__(self):
        self.web_channel = None
        self.scripts = []

    def setWebChannel(self, channel):
        self.web_channel = channel

    def runJavaScript(self, js, *args):
        self.scripts.append(js)


class FakeView(QObject):
    loadFinished = Signal(bool)

    def __init__(self):
        super().__init__()
        self._page = FakePage()
        self.html = None
        self.base_url = None

    def page(self):
        return self._page

    def setHtml(self, html, base_url):
        self.html = html
        self.base_url = base_url


class FakeReply(QObject):
    finished = Signal()

    def __init__(self, payload: bytes = b"", error=QNetworkReply.NetworkError.NoError):
        super().__init__()
        self._payload = payload
        self._error = error

    def error(self):
        return self._error

    def errorString(self):
        return "Host not found"

    def readAll(self):
        return QByteArray(self._payload)


class FakeNetwork:
    def __init__(self, reply: FakeReply):
        self.reply = reply
        self.requests = []

    def get(self, request):
        self.requests.append(request.url().toString())
        return self.reply


def _options_from_html(html: str) -> dict:
    line = next(l for l in html.splitlines() if l.startswith("var options = "))
    return json.loads(line[len("var options = "):].rstrip(";"))


def test_embed_html_carries_player_options():
    options = PlayerOptions(video_id="abc123")

    html = build_embed_html(options, "window.YT = {};")

    payload = _options_from_html(html)
    assert payload == {
        "videoId": "abc123",
        "host": "https://www.youtube-nocookie.com",
        "playerVars": {"autoplay": 1, "loop": 0, "controls": 1, "showinfo": 0, "rel": 0},
    }
    assert "<script>window.YT = {};</script>" in html
    assert "qwebchannel.js" in html


def test_embed_html_cannot_be_closed_early_by_its_inputs():
    options = PlayerOptions(video_id="</script><b>")

    html = build_embed_html(options, "var s = '</script>';")

    assert html.count("</script>") == 3
    assert "<\\/script>" in html


def test_friendly_error_messages():
    assert friendly_error(100) == "Video not found or removed"
    assert friendly_error(150) == "Embedding disabled for this video"
    assert friendly_error(999) == "YouTube player error code 999"


@pytest.fixture
def view(qapp):
    return FakeView()


@pytest.fixture
def hooks():
    calls = []
    return calls, (lambda: calls.append(("ready",))), (lambda code: calls.append(("state", code)))


def make_player(view, hooks):
    _, on_ready, on_state_change = hooks
    capability = YoutubeIframeCapability(API_URL, "window.YT = {};")
    return capability.create_player(view, PlayerOptions(video_id="abc123"), on_ready, on_state_change)


def test_player_loads_bootstrap_page_into_view(view, hooks):
    player = make_player(view, hooks)

    assert _options_from_html(view.html)["videoId"] == "abc123"
    assert view.base_url.toString() == "http://localhost/"
    assert view.page().web_channel is not None
    assert player.get_current_time() == 0.0
    assert player.get_duration() == 0.0


def test_calls_are_queued_until_page_loads(view, hooks):
    player = make_player(view, hooks)

    player.cue_video_by_id("xyz789")
    player.play_video()
    assert view.page().scripts == []

    view.loadFinished.emit(True)
    assert view.page().scripts == ['window.ytCue("xyz789");', "window.ytPlay();"]

    player.play_video()
    assert view.page().scripts[-1] == "window.ytPlay();"
    assert len(view.page().scripts) == 3


def test_failed_page_load_keeps_calls_queued(view, hooks, caplog):
    player = make_player(view, hooks)
    player.play_video()

    with caplog.at_level(logging.ERROR, logger="adapters.player.youtube_iframe"):
        view.loadFinished.emit(False)

    assert view.page().scripts == []
    assert "failed to load" in caplog.text


def test_bridge_stores_snapshot_before_calling_hooks(view):
    seen = []
    holder = {}

    def on_ready():
        seen.append(("ready", holder["player"].get_current_time(), holder["player"].get_duration()))

    def on_state_change(code):
        seen.append(("state", code, holder["player"].get_current_time(), holder["player"].get_duration()))

    capability = YoutubeIframeCapability(API_URL, "window.YT = {};")
    holder["player"] = player = capability.create_player(
        view, PlayerOptions(video_id="abc123"), on_ready, on_state_change)

    player.bridge.playerReady(0.0, 212.0)
    player.bridge.stateChanged(NativePlayerState.PAUSED, 53.0, 212.0)

    assert seen == [("ready", 0.0, 212.0), ("state", NativePlayerState.PAUSED, 53.0, 212.0)]


def test_pushed_snapshots_update_readings(view, hooks):
    player = make_player(view, hooks)

    player.bridge.snapshot(106.0, 212.0)

    assert player.get_current_time() == 106.0
    assert player.get_duration() == 212.0


def test_unreadable_snapshot_keeps_previous_readings(view, hooks):
    player = make_player(view, hooks)
    player.bridge.snapshot(10.0, 212.0)

    player._store_snapshot("later", 212.0)
    player._store_snapshot(11.0, object())

    assert player.get_current_time() == 10.0
    assert player.get_duration() == 212.0


def test_missing_snapshot_values_read_as_zero(view, hooks):
    player = make_player(view, hooks)

    player._store_snapshot(None, None)

    assert player.get_current_time() == 0.0
    assert player.get_duration() == 0.0


def test_cue_keeps_known_duration(view, hooks):
    player = make_player(view, hooks)
    view.loadFinished.emit(True)
    player.bridge.snapshot(30.0, 212.0)

    player.cue_video_by_id("xyz789")

    assert player.get_duration() == 212.0


def test_bridge_hooks_reach_player_hooks(view, hooks):
    calls, _, _ = hooks
    player = make_player(view, hooks)

    player.bridge.playerReady(0.0, 212.0)
    player.bridge.stateChanged(NativePlayerState.ENDED, 212.0, 212.0)

    assert calls == [("ready",), ("state", NativePlayerState.ENDED)]


def test_controller_ready_reports_zero_progress_from_page_snapshot(view):
    capability = YoutubeIframeCapability(API_URL, "window.YT = {};")
    controller = PlaybackController(CapabilityLoader(FakeEnvironment(capability, auto_ready=True)), view)
    received = []
    controller.channel.change.connect(received.append)
    controller.channel.progress.connect(received.append)

    asyncio.run(controller.on_identifier_changed("abc123"))
    view.loadFinished.emit(True)
    controller.player.bridge.playerReady(0.0, 212.0)

    assert received == [PlaybackChangeEvent(True), ProgressEvent(0)]

    controller.player.bridge.snapshot(106.0, 212.0)
    controller.on_timer_tick()
    assert received[-1] == ProgressEvent(50)

    asyncio.run(controller.on_identifier_changed("xyz789"))
    controller.on_timer_tick()
    assert received[-1] == ProgressEvent(50)
    assert view.page().scripts[-2:] == ['window.ytCue("xyz789");', "window.ytPlay();"]


def test_environment_loads_script_once_and_announces_capability(qapp, caplog):
    reply = FakeReply(b"window.YT = {};")
    network = FakeNetwork(reply)
    environment = WebEngineEnvironment(network)
    ready = []
    environment.install_ready_hook(ready.append)

    environment.insert_loader(API_URL)
    with caplog.at_level(logging.WARNING, logger="adapters.player.youtube_iframe"):
        environment.insert_loader(API_URL)
    reply.finished.emit()

    assert network.requests == [API_URL]
    assert "already inserted" in caplog.text
    assert len(ready) == 1
    assert isinstance(ready[0], YoutubeIframeCapability)
    assert ready[0].api_script == "window.YT = {};"
    assert ready[0].api_url == API_URL


def test_environment_network_error_never_calls_hook(qapp, caplog):
    reply = FakeReply(error=QNetworkReply.NetworkError.HostNotFoundError)
    environment = WebEngineEnvironment(FakeNetwork(reply))
    ready = []
    environment.install_ready_hook(ready.append)

    environment.insert_loader(API_URL)
    with caplog.at_level(logging.ERROR, logger="adapters.player.youtube_iframe"):
        reply.finished.emit()

    assert ready == []
    assert "Host not found" in caplog.text


def test_environment_undecodable_script_is_logged(qapp, caplog):
    reply = FakeReply(b"\xff\xfe not utf-8 \xff")
    environment = WebEngineEnvironment(FakeNetwork(reply))
    ready = []
    environment.install_ready_hook(ready.append)

    environment.insert_loader(API_URL)
    with caplog.at_level(logging.ERROR, logger="adapters.player.youtube_iframe"):
        reply.finished.emit()

    assert ready == []
    assert "not valid UTF-8" in caplog.text


def test_environment_feeds_the_capability_loader(qapp):
    reply = FakeReply(b"window.YT = {};")
    environment = WebEngineEnvironment(FakeNetwork(reply))
    loader = CapabilityLoader(environment, API_URL)

    async def scenario():
        waiters = [asyncio.ensure_future(loader.ensure_capability()) for _ in range(3)]
        await asyncio.sleep(0)
        reply.finished.emit()
        return await asyncio.gather(*waiters)

    results = asyncio.run(scenario())

    assert results[0] is results[1] is results[2]
    assert isinstance(results[0], YoutubeIframeCapability)
