"""
Store adapters, ingestion, snapshot refresh and change notifications.
"""
