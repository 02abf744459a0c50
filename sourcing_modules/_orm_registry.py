"""
Module ORM Registry (``sourcing_modules._orm_registry``).

Responsibility
--------------
Ensure every ORM model is imported so that ``Base.metadata`` contains its
table definition before tables are created.  ``create_tables()`` in the
kernel calls ``import_all_orm_models()`` first.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``sourcing_modules``
packages and from the kernel models.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``sourcing_modules.*.orm`` module.

    Kernel tables (users, products) come first so module tables can hold
    foreign keys to them.  Idempotent.
    """
    import sourcing_kernel.models  # noqa: F401
    # fmt: off
    import sourcing_modules.margins.orm  # noqa: F401
    import sourcing_modules.rfq.orm  # noqa: F401
    import sourcing_modules.quotes.orm  # noqa: F401
    import sourcing_modules.orders.orm  # noqa: F401
    import sourcing_modules.credit.orm  # noqa: F401
    # fmt: on
