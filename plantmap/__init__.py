"""PlantMap - tracker cycle and status-approval service for solar O&M."""

__version__ = "1.0.0"
