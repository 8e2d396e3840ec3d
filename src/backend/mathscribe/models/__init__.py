"""Pydantic models for tool outputs and the HTTP API."""
