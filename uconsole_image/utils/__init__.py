# uconsole_image/utils/__init__.py
