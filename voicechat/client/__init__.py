"""Capture/playback controller and turn orchestrator."""
