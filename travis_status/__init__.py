"""Travis CI build status for a local working copy."""

__version__ = "0.1.0"
