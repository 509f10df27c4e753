# uconsole_image/config/__init__.py
from .models import BuildConfig

__all__ = ["BuildConfig"]
