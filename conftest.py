"""Pytest configuration shared by all test directories."""

import matplotlib

# Figures are rendered off-screen in tests
matplotlib.use("Agg")
