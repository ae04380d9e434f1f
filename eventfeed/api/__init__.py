"""HTTP API for the event feed."""
