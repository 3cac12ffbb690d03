"""Node, device and parameter model with scenes, schedules and MQTT reporting."""

__version__ = "0.1.0"
__all__ = ["__version__"]