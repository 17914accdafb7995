"""Clinic appointment registry."""
