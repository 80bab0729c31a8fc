"""ServerWatch - game-server telemetry collected from chat channels."""

__version__ = "0.1.0"
