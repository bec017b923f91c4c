"""
Audio Services Module

Handles the voice-note path:
  - Speech-to-Text and Text-to-Speech through the EVA speech endpoints
  - Scoped temporary files for audio passing through disk
"""

from .bridge import AudioBridge, SYNTHESIS_LANGUAGE, TRANSCRIPTION_LANGUAGE
from .tempfiles import scoped_temp_file

__all__ = [
    "AudioBridge",
    "SYNTHESIS_LANGUAGE",
    "TRANSCRIPTION_LANGUAGE",
    "scoped_temp_file",
]
