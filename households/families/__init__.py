"""Family resolution package.

Clusters voters into households by exact address key, mints ``FAM####``
identifiers for new households, and reports on the resulting families.
Voters that already carry a family id are never re-clustered.
"""
