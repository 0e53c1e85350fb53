"""Utility helpers for the formstep runtime."""
