"""
Speech dedup gate.

Holds the single "last spoken" slot. A candidate is announced only when it is
non-empty and differs from the previous accepted announcement; the slot is
cleared on every mode change so the same label can be heard again later.
"""


class AnnouncementGate:
    def __init__(self, speech, status_store):
        self.speech = speech
        self.status = status_store
        self._last_spoken = ""

    @property
    def last_spoken(self) -> str:
        return self._last_spoken

    def consider(self, text: str) -> bool:
        if not text or text == self._last_spoken:
            return False

        # Preempt whatever is playing; announcements are never queued
        try:
            self.speech.cancel_speech()
        except Exception as e:
            self.status.log(f"gate: cancel_speech failed: {e}")

        self._last_spoken = text
        self.status.log(f"gate: announce '{text}'")
        try:
            self.speech.speak(text)
        except Exception as e:
            self.status.log(f"gate: speak failed: {e}")
        return True

    def reset(self):
        self._last_spoken = ""
