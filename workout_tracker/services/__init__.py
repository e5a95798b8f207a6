"""
Core services: profile store, reconciliation, session lifecycle and sync.
"""
