"""Local persistence: zone overrides, chat history and saved tokens."""
