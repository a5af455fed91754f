"""Persistence: the store interface, its Postgres implementation and the batch writer."""
