"""Transcription & response gateway."""
