"""PoseAI: camera-based rep counting and form feedback."""

__version__ = "1.0.0"
