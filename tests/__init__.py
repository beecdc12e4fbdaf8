"""Test package for the cognitive metrics engine.

Calculator, profile, percentile and aggregate tests are pure and need no
store. Engine and CLI tests use in-memory or temporary sqlite stores.
Run ``pytest`` from the project root.
"""
