# gmao/services/__init__.py

"""
Service layer: business operations spanning several domains.

- work_order_service: the work order lifecycle (create, assign, status
  transitions, signature, confirmation, images, invoice snapshot) and its
  cascades to technician availability and machine status.
- parts_consumption_service: attaching and detaching parts to a work order,
  coupled to the stock ledger and the order's parts cost.
"""

__title__ = "GMAO Services"
__description__ = "Cross-domain business services of the GMAO application."
__version__ = "0.1.0"
__all__ = []
