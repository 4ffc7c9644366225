"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "care-calendar.db"
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# BACKEND (hosted Postgres / storage / edge functions)
# =============================================================================

SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY", "")
SIGNED_URL_EXPIRY_SECONDS = int(os.environ.get("SIGNED_URL_EXPIRY_SECONDS", "3600"))
STAFF_DOCUMENTS_BUCKET = "staff-documents"

# =============================================================================
# EMAIL CONFIGURATION
# =============================================================================

FROM_EMAIL = os.environ.get("REPORT_FROM_EMAIL", "")
TO_EMAIL = os.environ.get("REPORT_TO_EMAIL", "")
ERROR_EMAIL = os.environ.get("REPORT_ERROR_EMAIL", "")

# =============================================================================
# CALENDAR CONFIGURATION
# =============================================================================

EVENT_TYPES = ("booking", "agreement", "training", "leave", "meeting")
VIEW_TYPES = ("daily", "weekly", "monthly")

UNASSIGNED_CARER_ID = "unassigned"
UNASSIGNED_CARER_NAME = "Needs Carer Assignment"

AGREEMENT_DURATION_MINUTES = 60
MEETING_DURATION_MINUTES = 60
TRAINING_START_HOUR = 9
TRAINING_END_HOUR = 17

# Working hours per carer per day, used for the capacity percentage
CAPACITY_HOURS_PER_DAY = 8

# =============================================================================
# NOTIFICATION CONFIGURATION
# =============================================================================

NOTIFICATION_FETCH_LIMIT = 50
NOTIFICATION_RETRY_ATTEMPTS = 3
NOTIFICATION_RETRY_MAX_SECONDS = 30
DYNAMIC_ITEMS_PER_CATEGORY = 5
SYSTEM_ITEMS_LIMIT = 10
HIGH_PRIORITIES = {"high", "urgent"}

# =============================================================================
# EXPORT CONFIGURATION
# =============================================================================

EXPORT_HEADERS = [
    "Title", "Type", "Date", "Start", "End", "Status", "Branch",
    "Client", "Carers", "Location", "Priority", "Conflicts",
]

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

CARE_API_KEY = os.environ.get("CARE_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
