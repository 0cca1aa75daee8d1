"""Ingestion: load seed data (clients, templates, items) into the database and search index."""
