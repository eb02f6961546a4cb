"""
Shared constants used across all probe modules.

Centralises endpoints, thresholds and tunables so they live in exactly
one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

# ---------------------------------------------------------------------------
# Public endpoints used purely as timing probes
# ---------------------------------------------------------------------------

PING_ENDPOINTS = (
    "https://www.google.com/favicon.ico",
    "https://www.cloudflare.com/favicon.ico",
    "https://www.microsoft.com/favicon.ico",
)

DOWNLOAD_URL = "https://speed.cloudflare.com/__down"
UPLOAD_URL = "https://speed.cloudflare.com/__up"

MULTI_SERVERS = (
    {"name": "Primary Server", "url": "https://cdnjs.cloudflare.com/ajax/libs/jquery/3.6.0/jquery.min.js"},
    {"name": "Secondary Server", "url": "https://code.jquery.com/jquery-3.6.0.min.js"},
    {"name": "Backup Server", "url": "https://ajax.googleapis.com/ajax/libs/jquery/3.6.0/jquery.min.js"},
)

# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------

DEFAULT_PING_COUNT = 10
MIN_PING_COUNT = 1
MAX_PING_COUNT = 100
PING_INTERVAL = 0.1              # seconds between latency samples

DOWNLOAD_TRIAL_SIZES_KB = (500, 1000, 2000, 5000)
DOWNLOAD_REQUEST_KB = 100        # each trial is split into 100 KB requests
UPLOAD_TRIAL_COUNT = 3
UPLOAD_PAYLOAD_KB = 200
TRIAL_PAUSE = 1.0                # seconds between throughput trials

MULTI_PING_COUNT = 5
MULTI_FETCH_COUNT = 3
MULTI_FETCH_KB = 100             # nominal size of the probed asset

DEFAULT_TIMEOUT = 10.0           # per-request timeout in seconds
MIN_TIMEOUT = 1.0
MAX_TIMEOUT = 120.0

# ---------------------------------------------------------------------------
# Outlier caps (Mbps)
# ---------------------------------------------------------------------------

MAX_DOWNLOAD_MBPS = 1000.0
MAX_UPLOAD_MBPS = 200.0
MAX_MULTI_DOWNLOAD_MBPS = 500.0
MULTI_UPLOAD_RATIO = 0.4         # multi-server upload is approximated

# ---------------------------------------------------------------------------
# Fallback ranges for failed requests (uniform)
# ---------------------------------------------------------------------------

FALLBACK_LATENCY_MS = (20.0, 120.0)
FALLBACK_DOWNLOAD_MBPS = (10.0, 90.0)
FALLBACK_UPLOAD_MBPS = (5.0, 45.0)
SIMULATED_UPLOAD_DELAY = (0.5, 1.5)

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

LOST_THRESHOLD_MS = 1000.0
CONSISTENCY_WINDOW = 5

# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

HISTORY_CAPACITY = 50
AUTO_TEST_INTERVAL = 30 * 60     # seconds
