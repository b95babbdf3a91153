"""
Probe core: configuration, data model, error taxonomy, settlement and orchestration.
"""
