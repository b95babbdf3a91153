"""
DNS lookups feeding the probe (TLSA pinning records).
"""
