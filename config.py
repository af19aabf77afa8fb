"""Configuration for Focus Groups."""

import os
from pathlib import Path

# Persistent store - a single JSON document shared by the CLI and the service
STORE_PATH = Path(
    os.environ.get(
        "FOCUS_GROUPS_STORE", Path.home() / ".focus_groups" / "store.json"
    )
)

# Key the group collection is persisted under
GROUPS_KEY = "groups"

# Where intercepted requests are sent
BLOCK_PAGE_URL = os.environ.get(
    "FOCUS_GROUPS_BLOCK_PAGE", "http://127.0.0.1/keep-your-promise.html"
)

# How often the service checks the store for changes (seconds)
WATCH_INTERVAL = float(os.environ.get("FOCUS_GROUPS_WATCH_INTERVAL", "2.0"))

# Upstream DNS server for non-blocked queries
UPSTREAM_DNS = os.environ.get("FOCUS_GROUPS_UPSTREAM_DNS", "8.8.8.8")
UPSTREAM_DNS_PORT = 53

# Local DNS server settings
DNS_HOST = "127.0.0.1"  # Listen on localhost only
DNS_PORT = int(os.environ.get("FOCUS_GROUPS_DNS_PORT", "53"))

# Blocked names resolve to the local machine, where the block page lives
BLOCK_IP = "127.0.0.1"
BLOCK_IPV6 = "::1"

LOG_LEVEL = os.environ.get("FOCUS_GROUPS_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
