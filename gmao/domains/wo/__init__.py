# gmao/domains/wo/__init__.py

"""
'wo' domain: maintenance work orders and the parts they consume.

The lifecycle rules live in gmao.services.work_order_service and the
parts/stock coupling in gmao.services.parts_consumption_service; this package
holds the models, schemas, read queries and routes.
"""

__title__ = "Work Order Management"
__description__ = "Work order lifecycle, parts usage, signatures, images and invoices."
__version__ = "0.1.0"
__all__ = []
