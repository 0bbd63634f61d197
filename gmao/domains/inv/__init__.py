# gmao/domains/inv/__init__.py

"""
'inv' domain: suppliers, spare parts (pieces) and the stock ledger.

Stock quantities change only through `crud.mouvement_stock.adjust_stock`,
which writes the quantity update and its movement record together.
"""

__title__ = "Inventory Management"
__description__ = "Suppliers, spare parts and auditable stock movements."
__version__ = "0.1.0"
__all__ = []
