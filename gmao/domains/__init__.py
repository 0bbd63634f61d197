# gmao/domains/__init__.py

"""
Business domains of the GMAO application.

- usr: user accounts, login and roles
- asset: clients and machines
- tech: technician profiles and availability
- inv: suppliers, spare parts and the stock ledger
- wo: work orders and parts usage
- shared: image storage and notification fan-out
- rpt: dashboard reporting
"""
