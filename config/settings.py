import os
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Paths
DATA_DIR = BASE_DIR / "data"

# Ensure directories exist
DATA_DIR.mkdir(exist_ok=True)

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'payroll.db'}")

# Application settings
DEBUG = os.getenv("DEBUG", "True").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Secret for Flask app
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

# Payroll calendar (Python weekday numbers, Monday=0): Friday and Saturday
WEEKLY_REST_DAYS = tuple(
    int(day) for day in os.getenv("WEEKLY_REST_DAYS", "4,5").split(",") if day.strip()
)
HOURS_PER_DAY = Decimal(os.getenv("HOURS_PER_DAY", "8"))

# Payroll rule defaults, used when a tenant has not configured its own
DEFAULT_MONTHLY_LATE_LIMIT = 3
DEFAULT_OVERTIME_RATE = Decimal('1.5')
DEFAULT_ABSENCE_PENALTY_RATE = Decimal('1.0')
EARLY_LEAVE_THRESHOLD_MINUTES = 60

# Oldest payroll year accepted by validation
MIN_PAYROLL_YEAR = 2000
