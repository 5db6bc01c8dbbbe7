import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
DB_PATH = Path(os.getenv("MEDISOS_DB_PATH", str(BASE_DIR / "medisos.db")))
DEFAULT_LATITUDE = float(os.getenv("DEFAULT_LATITUDE", "17.385044"))
DEFAULT_LONGITUDE = float(os.getenv("DEFAULT_LONGITUDE", "78.486671"))
SEARCH_RADIUS_KM = float(os.getenv("SEARCH_RADIUS_KM", "10"))
AVERAGE_SPEED_KMH = float(os.getenv("AVERAGE_SPEED_KMH", "30"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
AVAILABILITY_SEED = int(os.getenv("AVAILABILITY_SEED", "2024"))
