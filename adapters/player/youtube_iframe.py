"""
YouTube IFrame API running inside QtWebEngine.

WebEngineEnvironment plays the part of the browser window: it fetches the
IFrame API script once and announces readiness through its single ready
slot. Each IframePlayer then gets its own bootstrap page with the fetched
script inlined and talks back to Python through a QWebChannel bridge.
"""
import json
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QUrl, Slot
from PySide6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest
from PySide6.QtWebChannel import QWebChannel

from domain.models import PlayerOptions, VideoIdentifier
from domain.ports import (CapabilityEnvironmentPort, PlayerCapabilityPort,
                          PlayerInstancePort, ReadyHook)

logger = logging.getLogger(__name__)

# setHtml() uses this as the document URL. Keeping the page on localhost
# avoids youtube.com origin edge cases.
BOOTSTRAP_BASE_URL = "http://localhost/"

_API_SCRIPT_PLACEHOLDER = "/*__API_SCRIPT__*/"
_OPTIONS_PLACEHOLDER = "/*__OPTIONS__*/null"

_BOOTSTRAP_HTML = r"""<!doctype html>
<html>
<head>
<meta charset="utf-8">
<style>
html, body { margin:0; padding:0; width:100%; height:100%; background:#000; overflow:hidden; }
#player { width:100%; height:100%; }
</style>
<script src="qrc:///qtwebchannel/qwebchannel.js"></script>
</head>
<body>
<div id="player"></div>
<script>
var bridge = null;
var player = null;
var apiReady = false;
var options = /*__OPTIONS__*/null;

function report(target) {
  if (!target || !target.getCurrentTime) { return; }
  bridge.snapshot(target.getCurrentTime(), target.getDuration());
}

function createPlayer() {
  if (!apiReady || bridge === null || player !== null) { return; }
  player = new YT.Player('player', {
    videoId: options.videoId,
    host: options.host,
    playerVars: options.playerVars,
    events: {
      onReady: function (event) {
        bridge.playerReady(event.target.getCurrentTime(), event.target.getDuration());
        window.setInterval(function () { report(player); }, 250);
      },
      onStateChange: function (event) {
        bridge.stateChanged(event.data, event.target.getCurrentTime(), event.target.getDuration());
      },
      onError: function (event) { bridge.playerError(event.data); }
    }
  });
}

window.onYouTubeIframeAPIReady = function () {
  apiReady = true;
  window.onYouTubeIframeAPIReady = undefined;
  createPlayer();
};

new QWebChannel(qt.webChannelTransport, function (channel) {
  bridge = channel.objects.bridge;
  createPlayer();
});

window.ytCue = function (videoId) {
  if (player) { player.cueVideoById(videoId); } else { options.videoId = videoId; }
};

window.ytPlay = function () {
  if (player) { player.playVideo(); } else { options.playerVars.autoplay = 1; }
};
</script>
<script>/*__API_SCRIPT__*/</script>
</body>
</html>
"""

_ERROR_MESSAGES = {
    2: "Invalid video id or parameter",
    5: "HTML5 player error",
    100: "Video not found or removed",
    101: "Embedding disabled for this video",
    150: "Embedding disabled for this video",
}


def friendly_error(error_code: int) -> str:
    return _ERROR_MESSAGES.get(int(error_code), f"YouTube player error code {int(error_code)}")


def build_embed_html(options: PlayerOptions, api_script: str) -> str:
    """Bootstrap page for one player, with the API script inlined."""
    payload = {
        "videoId": options.video_id,
        "host": options.host,
        "playerVars": dict(options.player_vars),
    }
    # json.dumps does not escape "</", which would close the script tag early
    options_js = json.dumps(payload).replace("</", "<\\/")
    script_js = api_script.replace("</script", "<\\/script")
    return (_BOOTSTRAP_HTML
            .replace(_OPTIONS_PLACEHOLDER, options_js)
            .replace(_API_SCRIPT_PLACEHOLDER, script_js))


class _IframeBridge(QObject):
    """
    Object published to the page as `bridge`.

    Every call from the page carries a (current, duration) snapshot, which is
    stored before the player hooks run so a tick issued from a hook reads it.
    """

    def __init__(self, on_snapshot: Callable[[Any, Any], None], on_ready: Callable[[], None],
                 on_state_change: Callable[[int], None], parent=None):
        super().__init__(parent)
        self._on_snapshot = on_snapshot
        self._on_ready = on_ready
        self._on_state_change = on_state_change

    @Slot(float, float)
    def playerReady(self, current: float, duration: float):
        self._on_snapshot(current, duration)
        self._on_ready()

    @Slot(int, float, float)
    def stateChanged(self, code: int, current: float, duration: float):
        self._on_snapshot(current, duration)
        self._on_state_change(code)

    @Slot(float, float)
    def snapshot(self, current: float, duration: float):
        self._on_snapshot(current, duration)

    @Slot(int)
    def playerError(self, code: int):
        logger.warning("YouTube player error: %s", friendly_error(code))


class IframePlayerMeta(type(QObject), type(PlayerInstancePort)):
    pass


class IframePlayer(QObject, PlayerInstancePort, metaclass=IframePlayerMeta):
    def __init__(self, view: Any, options: PlayerOptions, api_script: str,
                 on_ready: Callable[[], None], on_state_change: Callable[[int], None]):
        super().__init__(view)
        self._view = view
        self._html_loaded = False
        self._pending_js_calls: list[str] = []

        # Latest snapshot pushed by the page
        self._current_time = 0.0
        self._duration = 0.0

        self._bridge = _IframeBridge(self._store_snapshot, on_ready, on_state_change, self)
        self._channel = QWebChannel(self)
        self._channel.registerObject("bridge", self._bridge)
        self._view.page().setWebChannel(self._channel)

        self._view.loadFinished.connect(self._on_load_finished)
        self._view.setHtml(build_embed_html(options, api_script), QUrl(BOOTSTRAP_BASE_URL))

    @property
    def bridge(self) -> _IframeBridge:
        return self._bridge

    def cue_video_by_id(self, video_id: VideoIdentifier):
        # The cached snapshot is kept; the CUED state change brings the new one
        self._run_js_or_queue(f"window.ytCue({json.dumps(video_id)});")

    def play_video(self):
        self._run_js_or_queue("window.ytPlay();")

    def get_current_time(self) -> float:
        return self._current_time

    def get_duration(self) -> float:
        return self._duration

    def _store_snapshot(self, current: Any, duration: Any):
        try:
            current_value = float(current or 0.0)
            duration_value = float(duration or 0.0)
        except (TypeError, ValueError):
            logger.debug("Unreadable player snapshot: %r / %r", current, duration)
            return
        self._current_time = current_value
        self._duration = duration_value

    def _on_load_finished(self, ok: bool):
        self._html_loaded = bool(ok)
        if not ok:
            logger.error("Player bootstrap page failed to load")
            return

        pending_calls, self._pending_js_calls = self._pending_js_calls, []
        for js in pending_calls:
            self._view.page().runJavaScript(js)

    def _run_js_or_queue(self, js: str):
        if not self._html_loaded:
            self._pending_js_calls.append(js)
            return
        self._view.page().runJavaScript(js)


class YoutubeIframeCapability(PlayerCapabilityPort):
    def __init__(self, api_url: str, api_script: str):
        self.api_url = api_url
        self.api_script = api_script

    def create_player(self, target: Any, options: PlayerOptions,
                      on_ready: Callable[[], None],
                      on_state_change: Callable[[int], None]) -> IframePlayer:
        return IframePlayer(target, options, self.api_script, on_ready, on_state_change)


class WebEngineEnvironmentMeta(type(QObject), type(CapabilityEnvironmentPort)):
    pass


class WebEngineEnvironment(QObject, CapabilityEnvironmentPort, metaclass=WebEngineEnvironmentMeta):
    def __init__(self, network: Optional[QNetworkAccessManager] = None, parent=None):
        super().__init__(parent)
        self._network = network or QNetworkAccessManager(self)
        self._ready_hook: Optional[ReadyHook] = None
        self._reply: Optional[QNetworkReply] = None

    def install_ready_hook(self, hook: Optional[ReadyHook]):
        self._ready_hook = hook

    def insert_loader(self, url: str):
        if self._reply is not None:
            logger.warning("Loader for %s already inserted", url)
            return
        self._reply = self._network.get(QNetworkRequest(QUrl(url)))
        self._reply.finished.connect(lambda: self._on_loader_finished(url))

    def _on_loader_finished(self, url: str):
        # Failures leave waiters suspended; there is no retry.
        reply = self._reply
        if reply.error() != QNetworkReply.NetworkError.NoError:
            logger.error("Failed to load player API from %s: %s", url, reply.errorString())
            reply.deleteLater()
            return

        raw = bytes(reply.readAll().data())
        reply.deleteLater()
        try:
            api_script = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.error("Player API from %s is not valid UTF-8: %s", url, exc)
            return

        hook = self._ready_hook
        if hook is None:
            logger.warning("Player API loaded but no ready hook is installed")
            return
        hook(YoutubeIframeCapability(url, api_script))
