# gmao/domains/shared/__init__.py

"""
'shared' domain: collaborators used across domains.

- services.ImageStorage: stores uploaded images on disk and returns their URL.
- services.notify: fire-and-forget event fan-out through the arq queue.
"""

__title__ = "Shared Services"
__description__ = "Image storage and notification dispatch."
__version__ = "0.1.0"
__all__ = []
