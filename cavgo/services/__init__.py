"""
Services package for the Cavgo booking API.

Contains business logic that doesn't fit cleanly into the repository
pattern: external gateways, replication, background watchers and the
route finder.
"""
