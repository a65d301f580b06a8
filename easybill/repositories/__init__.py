# ==== REPOSITORIES PACKAGE ==== #

"""
Data access layer.

Every repository except ``TenantRecordRepository`` is bound to one tenant at
construction and scopes all of its statements to that tenant.
"""
