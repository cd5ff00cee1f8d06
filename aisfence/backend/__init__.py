"""Host-facing side: models, configuration, plugin adapter and the FastAPI service."""
