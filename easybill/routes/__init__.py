# ==== ROUTES PACKAGE ==== #

"""
Routes package for API endpoints.

This package contains the FastAPI routers mounted under ``/api/v1``:
authentication and users, platform tenant administration, billing,
inventory, suppliers, customers and offers, reports, notifications and
tenant metadata definitions.
"""
