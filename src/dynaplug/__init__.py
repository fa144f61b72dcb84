"""dynaplug — runtime core for dynamically loaded plugins and their extensions."""

__version__ = "0.1.0"
