"""
Result exposition: Prometheus text format and the HTTP listener serving it.
"""
