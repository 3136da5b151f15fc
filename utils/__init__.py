"""Utility helpers for the intake wizard."""
