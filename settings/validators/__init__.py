"""Field types that validate configuration values against the file system."""

from settings.validators.directory_path import DirectoryPath

__all__ = ["DirectoryPath"]
