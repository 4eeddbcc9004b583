import os

from dotenv import load_dotenv

load_dotenv()

# ─────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────


def env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SUPABASE_URL      = os.environ.get("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
HTTP_TIMEOUT      = float(os.environ.get("EVENT_HUB_HTTP_TIMEOUT", "30"))

# Calendar export switches, both off to keep existing exports unchanged:
# STABLE_UID drops the export timestamp from UID,
# ZONE_AWARE converts local start/end times to real UTC instead of relabelling.
STABLE_UID = env_flag("EVENT_HUB_STABLE_UID")
ZONE_AWARE = env_flag("EVENT_HUB_ZONE_AWARE")
