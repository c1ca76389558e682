"""dealgate: readiness-gated HTTP bootstrap for the deals backend."""

__version__ = "0.1.0"
