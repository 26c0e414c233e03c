"""Soil and light monitoring backend."""
