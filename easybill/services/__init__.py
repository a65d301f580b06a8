# ==== SERVICES PACKAGE ==== #

"""
Business services for the EasyBill platform.

Each service wraps one domain (authentication, tenants, users, billing,
inventory, suppliers, customers, offers, reports, notifications,
metadata) and is constructed per request with the request's database
session and canonical tenant id.
"""
