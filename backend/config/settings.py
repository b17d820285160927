"""
Central configuration for backend settings.
"""
import os


# Closure: a traverse "closes" when either threshold is met
CLOSES_MAX_ERROR_FEET: float = float(os.getenv("CLOSES_MAX_ERROR_FEET", "1.0"))
CLOSES_MIN_PRECISION: int = int(os.getenv("CLOSES_MIN_PRECISION", "2500"))

# Misclosure above this is reported with severity "error" instead of "warning"
CLOSURE_ERROR_SEVERITY_FEET: float = float(os.getenv("CLOSURE_ERROR_SEVERITY_FEET", "2.0"))

# Called vs calculated area, percent difference
AREA_WARNING_PERCENT: float = float(os.getenv("AREA_WARNING_PERCENT", "2.0"))
AREA_ERROR_PERCENT: float = float(os.getenv("AREA_ERROR_PERCENT", "5.0"))

# Forward/reverse divergence below this is treated as rounding noise
ERROR_ZONE_NOISE_FLOOR_FEET: float = float(os.getenv("ERROR_ZONE_NOISE_FLOOR_FEET", "1.0"))

# Horizontal spacing between parcels in combined (side-by-side) layouts
COMBINED_GAP_FEET: float = float(os.getenv("COMBINED_GAP_FEET", "50.0"))

# DXF export
DXF_TEXT_HEIGHT: float = float(os.getenv("DXF_TEXT_HEIGHT", "2.0"))
DXF_POINT_RADIUS: float = float(os.getenv("DXF_POINT_RADIUS", "0.5"))
DXF_LABEL_OFFSET: float = float(os.getenv("DXF_LABEL_OFFSET", "3.0"))
DXF_SIDE_BY_SIDE_GAP: float = float(os.getenv("DXF_SIDE_BY_SIDE_GAP", "100.0"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_RING_BUFFER_SIZE: int = int(os.getenv("LOG_RING_BUFFER_SIZE", "5000"))
LOG_TO_FILE: bool = os.getenv("LOG_TO_FILE", "true").lower() in ("1", "true", "yes")
LOG_DIR: str = os.getenv("LOG_DIR", os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs"))
LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", "5000000"))
LOG_FILE_BACKUPS: int = int(os.getenv("LOG_FILE_BACKUPS", "5"))
LOG_RING_BUFFER_MIN_LEVEL: str = os.getenv("RING_BUFFER_MIN_LEVEL", "INFO")

# Server
API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS: list = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
