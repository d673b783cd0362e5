# client/feedback.py

import logging
from threading import Thread
from typing import Callable, Iterable, Optional

import pyttsx3

from poseai import config
from poseai.client.rep_logic import FeedbackEvent, FeedbackKind

logger = logging.getLogger(__name__)

TextSink = Callable[[FeedbackEvent], None]
SpeechSink = Callable[[str], None]


# ---------- TTS helper (per-message thread) ----------

def speak_message(text: str, rate: int = config.TTS_RATE):
    """
    Create a fresh pyttsx3 engine for THIS message only.
    Runs in its own thread so the frame loop never blocks.
    """
    if not text:
        return
    try:
        engine = pyttsx3.init()
        engine.setProperty("rate", rate)
        engine.say(text)
        engine.runAndWait()
        engine.stop()
    except Exception as e:
        # overlapping or failed utterances are dropped
        logger.warning("TTS error: %s", e)


class Pyttsx3Speaker:
    """Fire-and-forget speech sink."""

    def __init__(self, rate: int = config.TTS_RATE):
        self.rate = rate

    def __call__(self, text: str) -> None:
        Thread(target=speak_message, args=(text, self.rate), daemon=True).start()


class LoggingTextSink:
    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def __call__(self, event: FeedbackEvent) -> None:
        level = logging.WARNING if event.kind is FeedbackKind.WARNING else logging.DEBUG
        self.log.log(level, "[%s] %s", event.kind.value, event.message)


class FeedbackEmitter:
    """
    Fans feedback events out to a text sink (every event) and a speech
    sink (spoken events only, while voice feedback is on).
    """

    def __init__(
        self,
        text_sink: Optional[TextSink] = None,
        speech_sink: Optional[SpeechSink] = None,
        voice_enabled: bool = config.VOICE_FEEDBACK,
    ):
        self.text_sink = text_sink or LoggingTextSink()
        self.speech_sink = speech_sink
        self.voice_enabled = voice_enabled

    def emit(self, events: Iterable[FeedbackEvent]) -> None:
        for event in events:
            self.text_sink(event)
            if event.spoken and self.voice_enabled and self.speech_sink is not None:
                self.speech_sink(event.message)
