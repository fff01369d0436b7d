"""Speech capability interface (text-to-speech and speech-to-text).

The server does not synthesise or recognise speech itself. Whatever does is
injected as a SpeechEngine; the default engine speaks nothing and reports
recognition as unsupported.
"""
import re as _re

SPEECH_LANG = "zh-TW"
RECOGNITION_UNSUPPORTED = "お使いのブラウザは音声認識をサポートしていません。"


class SpeechUnavailable(Exception):
    pass


class SpeechEngine:
    can_speak = False
    can_transcribe = False

    def speak(self, text: str, lang: str = SPEECH_LANG) -> None:
        pass

    def transcribe(self, audio: bytes, lang: str = SPEECH_LANG) -> str:
        raise SpeechUnavailable(RECOGNITION_UNSUPPORTED)

    def capabilities(self) -> dict:
        return {"tts": self.can_speak, "stt": self.can_transcribe}


def speakable_text(text: str) -> str:
    """Chinese part of a tutor reply: everything before the Japanese gloss in parentheses."""
    return _re.split(r"[(（]", text, maxsplit=1)[0].strip()
