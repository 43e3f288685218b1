"""HTTP API layer - FastAPI application, models, and routes."""
