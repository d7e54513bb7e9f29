"""Pure domain primitives shared by every FOP module."""
