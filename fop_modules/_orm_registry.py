"""
Module ORM Registry (``fop_modules._orm_registry``).

Responsibility
--------------
Import every module's SQLAlchemy models so that ``Base.metadata`` knows
their tables before ``create_tables()`` runs.

Usage
-----
``fop_kernel.db.engine.create_tables``, ``scripts/run_jobs.py`` and
``tests/conftest.py`` all go through ``import_all_orm_models()``.
"""


def import_all_orm_models() -> None:
    """Import every ``fop_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import fop_modules.applications.orm  # noqa: F401
    import fop_modules.permits.orm  # noqa: F401
    import fop_modules.revenue.orm  # noqa: F401
    # fmt: on
