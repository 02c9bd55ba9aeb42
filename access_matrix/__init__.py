"""access-matrix: role- and territory-based access control backend.

Manages users, roles, municipalities and granular permissions, and keeps the
per-user/per-municipality permission matrix in sync with role assignments.
"""
