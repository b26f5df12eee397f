# app.py
"""
Thin entrypoint for the API.

Usage example:
    uvicorn app:app --reload --port 3001
"""

from repario.main import app  # re-export FastAPI instance
