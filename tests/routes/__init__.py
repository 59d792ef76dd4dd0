"""
Route tests for the ChatJPT API.

Each module drives the FastAPI app through TestClient against an in-memory
Redis and a scripted reply generator.
"""
