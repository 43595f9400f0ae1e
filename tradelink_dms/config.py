import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, DB_PATH_ENV

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR
DB_PATH = Path(os.environ[DB_PATH_ENV]) if os.environ.get(DB_PATH_ENV) else DATA_PATH / DB_FILE_NAME
