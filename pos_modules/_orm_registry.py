"""
Module ORM Registry (``pos_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds its table before ``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  ``pos_kernel.db.engine.create_tables`` imports
it lazily; nothing else in the kernel may.
"""


def import_all_orm_models() -> None:
    """Import every ``pos_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import pos_modules.inventory.orm  # noqa: F401
    import pos_modules.ledger.orm  # noqa: F401
    import pos_modules.menu.orm  # noqa: F401
    import pos_modules.orders.orm  # noqa: F401
    # fmt: on
