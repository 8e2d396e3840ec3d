"""Helpers shared by tools and services."""
