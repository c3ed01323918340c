import os
from dotenv import load_dotenv

# Load variables from .env into environment
load_dotenv()

# =========================
# CLICKUP CONFIG
# =========================
CLICKUP_API_TOKEN = os.getenv("CLICKUP_API_TOKEN")
CLICKUP_TEAM_ID = os.getenv("CLICKUP_TEAM_ID")
BASE_URL = "https://api.clickup.com/api/v2"
TASK_URL_BASE = "https://app.clickup.com/t"

# =========================
# ALLOCATION LIST (team structure)
# =========================
CLICKUP_ALLOCATION_LIST_ID = os.getenv("CLICKUP_ALLOCATION_LIST_ID")
CLICKUP_TEAM_LEAD_TIER_ID = os.getenv("CLICKUP_TEAM_LEAD_TIER_ID")

# =========================
# REPORT CONFIG
# =========================
# Reports default to Pakistan Standard Time (UTC+5), never host local time.
REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "Asia/Karachi")

# =========================
# SERVER CONFIG
# =========================
MCP_HOST = os.getenv("MCP_HOST", "0.0.0.0")
MCP_PORT = int(os.getenv("MCP_PORT", "8001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


# =========================
# VALIDATION (FAIL FAST)
# =========================
def validate_config():
    missing = []

    if not CLICKUP_API_TOKEN:
        missing.append("CLICKUP_API_TOKEN")

    if not CLICKUP_TEAM_ID:
        missing.append("CLICKUP_TEAM_ID")

    # Allocation list / tier are optional - the team report tool accepts overrides

    if missing:
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
