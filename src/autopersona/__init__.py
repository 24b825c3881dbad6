"""autopersona, recurring content generation for AI characters."""

__version__ = "0.1.0"
