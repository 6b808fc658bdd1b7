"""Real-time welding technique evaluation from motion sensors and a camera marker."""

__version__ = "0.1.0"
