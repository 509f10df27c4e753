# core.py
from typing import Optional
from uconsole_image.utils.logger import RichAppLogger

# Process-wide logger wrapper, set by the CLI before the build starts
app_logger: Optional[RichAppLogger] = None
