"""Kernel services: unit of work, event dispatch, result mapping."""
