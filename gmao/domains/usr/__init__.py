# gmao/domains/usr/__init__.py

"""
'usr' domain: user accounts, authentication and roles.
"""

__title__ = "User Management"
__description__ = "User accounts, JWT login and role based authorization."
__version__ = "0.1.0"
__all__ = []
