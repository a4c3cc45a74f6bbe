"""Managers for the ticker streaming backend."""
