"""Personal notes service: FastAPI backend and client synchronization layer."""
