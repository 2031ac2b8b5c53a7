"""chainirc - terminal chat over an account-abstraction bundler."""

__version__ = "0.3.0"
