# gmao/domains/rpt/__init__.py

"""
'rpt' domain: read-only aggregates for the maintenance dashboard.
"""

__title__ = "Reporting"
__description__ = "Dashboard statistics over machines, technicians, work orders and stock."
__version__ = "0.1.0"
__all__ = []
