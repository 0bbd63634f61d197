# gmao/__init__.py

"""
Main package of the GMAO (maintenance management) FastAPI application.

The package is split into the `core` subpackage (configuration, database,
security, error types), the `domains` subpackage (one folder per business
domain: users, assets, technicians, inventory, work orders, reports) and the
`services` subpackage holding the cross-domain work order engine.
"""

APP_NAME = "GMAO FastAPI API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # common prefix applied in main.py

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Maintenance management (GMAO) back office: clients, machines, technicians, spare parts and work orders."
__license__ = "MIT"
__all__ = []
