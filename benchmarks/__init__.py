"""Locust load benchmarks for Vault AppRole login and the Transit engine."""
