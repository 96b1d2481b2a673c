"""Static detector of calls into a package namespace inside compiled Java archives."""

__version__ = "0.1.0"
