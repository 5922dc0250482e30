"""
Speech output - cross-platform, non-blocking.

Priority:
  1. Pre-rendered clip for fixed phrases: assets/<voice>/<clip>.mp3
  2. Dynamic text: macOS `say`, espeak or espeak-ng (Linux)
  3. Silent log if no audio tool is available

Only one utterance plays at a time: speak() kills the current one first.
"""

import os
import shutil
import subprocess
import sys
from shelfscan.adapters.tts import lines as L


class LocalPlayerTTS:
    def __init__(self, status_store, assets_dir: str | None = None, voice: str = "default", rate: int = 175):
        self.status = status_store
        self.assets_dir = assets_dir or os.path.join(os.path.dirname(__file__), "assets")
        self.voice = voice
        self.rate = rate
        self._proc: subprocess.Popen | None = None

    def speak(self, text: str):
        self.cancel_speech()
        clip = self._resolve_clip(text)
        if clip is not None:
            self.status.log(f"tts: playing {os.path.basename(clip)}")
            self._proc = self._play_clip(clip)
        else:
            self.status.log(f"tts: say -> {text}")
            self._proc = self._say_text(text)

    def cancel_speech(self):
        proc, self._proc = self._proc, None
        if proc is not None and proc.poll() is None:
            proc.terminate()

    @property
    def speaking(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def _resolve_clip(self, text: str) -> str | None:
        fname = L.LINE_CLIP.get(text)
        if fname is None:
            return None
        path = os.path.join(self.assets_dir, self.voice, fname)
        return path if os.path.isfile(path) else None

    def _spawn(self, cmd: list[str]) -> subprocess.Popen:
        # Popen returns immediately; the process is the handle used to cancel
        return subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def _play_clip(self, path: str) -> subprocess.Popen | None:
        if sys.platform == "darwin":
            return self._spawn(["afplay", path])
        elif shutil.which("ffplay"):
            return self._spawn(["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", path])
        elif shutil.which("mpv"):
            return self._spawn(["mpv", "--no-video", path])
        elif shutil.which("paplay"):
            return self._spawn(["paplay", path])
        self.status.log("tts: no audio player found, skipping playback")
        return None

    def _say_text(self, text: str) -> subprocess.Popen | None:
        if sys.platform == "darwin":
            return self._spawn(["say", "-r", str(self.rate), text])
        elif shutil.which("espeak"):
            return self._spawn(["espeak", "-s", str(self.rate), text])
        elif shutil.which("espeak-ng"):
            return self._spawn(["espeak-ng", "-s", str(self.rate), text])
        self.status.log(f"tts: no speech tool available, would say: {text}")
        return None
