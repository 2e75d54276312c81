"""Playback controller — the single background-music channel plus sound effects.

The controller does not play sound. It decides which audio commands the
presentation layer should execute and remembers what is already playing,
so repeated directives do not restart the track.

Rules:
  bgm  — exclusive channel. A node directive whose source equals the last
         bgm directive is suppressed; play_bgm() of the track that is
         already current is suppressed too. Switching stops the old track.
  sfx  — fire-and-forget, may overlap, always emitted.

Playback state is not narrative state: it lives here, never in GameState.
"""

from __future__ import annotations

from typing import Any

from .models import AudioDirective

AudioCommand = dict[str, Any]  # {"action": "play_bgm"|"stop_bgm"|"play_sfx", "src"?, "loop"?, "volume"?}

DEFAULT_BGM_VOLUME = 0.3
DEFAULT_SFX_VOLUME = 0.5


def _clamp(volume: float) -> float:
    return max(0.0, min(1.0, float(volume)))


class PlaybackController:
    def __init__(
        self,
        bgm_volume: float = DEFAULT_BGM_VOLUME,
        sfx_volume: float = DEFAULT_SFX_VOLUME,
        muted: bool = False,
    ) -> None:
        self.bgm_volume = _clamp(bgm_volume)
        self.sfx_volume = _clamp(sfx_volume)
        self.muted = muted
        self._current: str | None = None
        self._last_directive: str | None = None

    def current_track(self) -> str | None:
        return self._current

    def play(self, directive: AudioDirective | None) -> AudioCommand | None:
        """Apply a node's audio directive; None when nothing should happen."""
        if directive is None:
            return None
        if directive.type == "sfx":
            return self.play_sfx(directive.src)
        if directive.src == self._last_directive:
            return None
        self._last_directive = directive.src
        return self.play_bgm(directive.src, True if directive.loop is None else directive.loop)

    def play_bgm(self, src: str, loop: bool = True) -> AudioCommand | None:
        if src == self._current:
            return None
        self._current = src
        return {"action": "play_bgm", "src": src, "loop": loop, "volume": self._bgm_level()}

    def play_sfx(self, src: str) -> AudioCommand:
        level = 0.0 if self.muted else self.sfx_volume
        return {"action": "play_sfx", "src": src, "volume": level}

    def stop(self) -> AudioCommand | None:
        if self._current is None:
            return None
        self._current = None
        self._last_directive = None
        return {"action": "stop_bgm"}

    def set_bgm_volume(self, volume: float) -> None:
        self.bgm_volume = _clamp(volume)

    def set_sfx_volume(self, volume: float) -> None:
        self.sfx_volume = _clamp(volume)

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        return self.muted

    def _bgm_level(self) -> float:
        return 0.0 if self.muted else self.bgm_volume

    # ── Serialisation (kept beside, not inside, the GameState) ──

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self._current,
            "last_directive": self._last_directive,
            "bgm_volume": self.bgm_volume,
            "sfx_volume": self.sfx_volume,
            "muted": self.muted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlaybackController:
        ctl = cls(
            bgm_volume=data.get("bgm_volume", DEFAULT_BGM_VOLUME),
            sfx_volume=data.get("sfx_volume", DEFAULT_SFX_VOLUME),
            muted=data.get("muted", False),
        )
        ctl._current = data.get("current")
        ctl._last_directive = data.get("last_directive")
        return ctl
