"""
FirmOS Applications Package.

Contains:
- core_api: FastAPI application (governance API server)
"""

__version__ = "0.1.0"
