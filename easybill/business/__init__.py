# ==== BUSINESS LOGIC PACKAGE ==== #

"""
Business logic package for domain vocabularies and policies.

Status enumerations, plan limits, GST arithmetic, the rule engine and the
template renderer shared by the service layer.
"""
