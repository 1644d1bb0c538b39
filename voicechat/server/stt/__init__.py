from .base_stt import BaseSTTEngine
from .factory import create_stt_engine

__all__ = ["BaseSTTEngine", "create_stt_engine"]
