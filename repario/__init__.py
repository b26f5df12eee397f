# repario/__init__.py
"""
Repario invoicing API.

    uvicorn repario:app --reload
"""

from .main import app

__all__ = ["app"]
