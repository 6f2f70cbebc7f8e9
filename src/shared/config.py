"""Configuration for Signal Artifact Workflows.

All settings are read from environment variables with sensible defaults
for the cluster setup. Override via env vars for different environments.
"""

import os

# ============================================================
# MinIO / S3 Configuration (artifact object store)
# ============================================================
# In-cluster: minio.flyte.svc.cluster.local:9000
# External:   set MINIO_ENDPOINT to the NodePort / public endpoint

MINIO_ENDPOINT = os.environ.get("MINIO_ENDPOINT", "http://minio.flyte.svc.cluster.local:9000")
MINIO_ACCESS_KEY = os.environ.get("AWS_ACCESS_KEY_ID", "minio")
MINIO_SECRET_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY", "miniostorage")
S3_REGION = os.environ.get("S3_REGION", "us-east-1")

# Bucket holding the analysis pipeline output (read-only from here)
ARTIFACT_BUCKET = os.environ.get("ARTIFACT_BUCKET", "ttb-artifacts")

# ============================================================
# Object Layout
# ============================================================
# daily/<YYYY-MM-DD>/signals_<SYMBOL>_<timestamp>.json
# daily/<YYYY-MM-DD>/<SYMBOL>_gemini_analysis_<timestamp>.json
# spreads-yo/<SYMBOL>_spread_analysis_<timestamp>.md

DAILY_PREFIX = os.environ.get("DAILY_PREFIX", "daily/")
SPREADS_PREFIX = os.environ.get("SPREADS_PREFIX", "spreads-yo/")

# Filename fragments (matched case-insensitively against the basename)
SIGNALS_MARKER = "signals_"
ANALYSIS_MARKER = "_gemini_analysis_"
SPREAD_REPORT_MARKER = "_spread_analysis_"

STRUCTURED_SUFFIX = ".json"
REPORT_SUFFIX = ".md"

# ============================================================
# Resolver
# ============================================================
# "flat":          one listing of the whole daily prefix, grouped in memory
# "per_partition": list partition folders, then each partition newest first

RESOLVER_LISTING_MODE = os.environ.get("RESOLVER_LISTING_MODE", "flat")

# ============================================================
# Signal Ranking
# ============================================================

# Strongest first. Labels whose first token is not listed rank last.
STRENGTH_VOCABULARY = ["EXTREME", "HIGH", "MEDIUM", "LOW"]

SIGNAL_WINDOW_DAYS = int(os.environ.get("SIGNAL_WINDOW_DAYS", "7"))

# ============================================================
# WF1: Artifact Digest Defaults
# ============================================================

# Comma-separated; empty = every symbol found in the store
DIGEST_SYMBOLS = [
    s.strip().upper()
    for s in os.environ.get("DIGEST_SYMBOLS", "").split(",")
    if s.strip()
]

# Development: Small subset for fast testing
DEV_SYMBOLS = ["AAPL", "MSFT", "ORCL"]

# ============================================================
# Logging
# ============================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
