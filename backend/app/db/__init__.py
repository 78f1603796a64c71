"""
Database module for SEIO

Contains seed data for the initial administrator and a demo school.
"""
from app.db.seed_data import seed_all

__all__ = ["seed_all"]
