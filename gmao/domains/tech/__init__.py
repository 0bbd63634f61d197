# gmao/domains/tech/__init__.py

"""
'tech' domain: technician profiles bound 1:1 to user accounts, and the
technician availability tracker.
"""

__title__ = "Technician Management"
__description__ = "Technician profiles and availability status."
__version__ = "0.1.0"
__all__ = []
