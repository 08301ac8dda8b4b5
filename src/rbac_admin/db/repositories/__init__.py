"""
rbac_admin.db.repositories

Data access for users, roles, permissions, service modules, bearer tokens and
Google credentials.
"""

# Import repositories from their submodules; nothing is re-exported here.
