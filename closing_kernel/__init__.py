"""
Closing Kernel -- records, errors, logging and the session store for
cash-register closing review.

The kernel holds everything the calculation engines stand on:

* ``closing_kernel.domain``: frozen input records (session, cash count,
  terminal settlement) and the validated ``SessionFilter``.
* ``closing_kernel.exceptions``: the typed error hierarchy.
* ``closing_kernel.logging_config``: structured JSON logging.
* ``closing_kernel.db`` / ``models`` / ``selectors``: the SQLAlchemy store
  the review service reads sessions from.
"""

__version__ = "0.1.0"
