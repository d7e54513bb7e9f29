"""Persistence infrastructure: declarative base, engine, column types."""
