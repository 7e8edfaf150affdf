"""shellify: discover, validate and cache shell module registries."""

__version__ = "0.1.0"
