# gmao/domains/asset/__init__.py

"""
'asset' domain: clients and the machines they own.

Machine `statut` is projected from the machine's open work orders by
`crud.machine.apply_active_work_effect` and `crud.machine.release_if_idle`.
"""

__title__ = "Asset Management"
__description__ = "Clients, machines and machine operational status."
__version__ = "0.1.0"
__all__ = []
