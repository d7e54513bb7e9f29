"""
FOP Kernel - shared infrastructure for the Foreign Operator Permit core.

- Typed exceptions with stable machine-readable codes
- Structured JSON logging
- Injectable clock
- Money / Weight value objects
- Domain events with post-commit dispatch
- SQLAlchemy base, engine and unit of work
"""

__version__ = "0.1.0"
