# uconsole_image/executors/__init__.py
