"""
Operational self-monitoring.
"""
