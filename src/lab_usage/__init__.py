"""Computer-lab utilization analysis."""

__version__ = "0.1.0"
