"""
Shared constants for MTCE: protocol defaults, identities and metric names.
Use these instead of hardcoding ports, timeouts or the EHLO identity across modules.
"""
# SMTP
SMTP_PORT = 587
SMTP_PORT_MX = 25
EHLO_IDENTITY = "ietf-synthetics-probe"

# IMAP
IMAP_PORT = 143
IMAP_TAG = "."

# Timeouts: every bounded operation uses the same window (milliseconds in config)
CHECK_TIMEOUT_MS = 15000

# Socket reads are chunked; one chunk is fed to the negotiator at a time
READ_CHUNK_SIZE = 4096

# Bounded wait for a graceful close (TLS close_notify) after a finished check
CLOSE_TIMEOUT = 1.0

# HTTP exporter
SERVER_PORT = 19309
METRICS_PATH = "/metrics"
METRIC_PREFIX = "mtce"

# TLSA defaults when the record could not be resolved (DANE-EE, SPKI, SHA-256)
TLSA_USAGE_DANE_EE = 3
TLSA_SELECTOR_FULL = 0
TLSA_SELECTOR_SPKI = 1
TLSA_MATCH_EXACT = 0
TLSA_MATCH_SHA256 = 1
TLSA_MATCH_SHA512 = 2
