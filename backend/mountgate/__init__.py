"""mountgate — remote file operations for machine file mounts."""

__version__ = "0.1.0"
