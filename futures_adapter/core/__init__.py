"""
Core infrastructure: upstream client, caches, retries, errors and audit trail
"""
