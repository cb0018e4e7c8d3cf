"""Tamper evidence for directory trees via per-directory fingerprint indices."""
