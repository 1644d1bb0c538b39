"""Voice chat: push-to-talk client and transcription/response gateway."""

__version__ = "0.1.0"
