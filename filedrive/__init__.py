"""File storage HTTP service with Google sign-in, JWT cookie sessions and a SQL metadata store."""

__version__ = "0.1.0"