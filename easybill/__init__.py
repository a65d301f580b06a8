# ==== EASYBILL PACKAGE ==== #

"""
EasyBill multi-tenant retail platform.

Billing, inventory, supplier, notification and tenant management APIs
sharing one tenant-isolated persistence layer.
"""

__version__ = "0.1.0"
