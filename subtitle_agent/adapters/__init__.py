"""Input adapters that convert transcription engine output into Segments."""
