"""Infraestructura: DB, repositorios y dispatchers de auditoría."""
