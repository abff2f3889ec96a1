"""Anomaly detection.

Stateless rules over location fixes (:mod:`.rules`) and the full-session
re-analysis run when a session closes (:mod:`.analysis`).
"""
