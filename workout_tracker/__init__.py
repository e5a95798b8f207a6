"""
Workout tracker core: local profiles, active session lifecycle and
local/remote dataset reconciliation.
"""

__version__ = "1.0.0"
