"""Importable classes used by the zenwire test-suite."""
