"""labenv - ephemeral AWS lab environment lifecycle manager."""

__version__ = "0.3.0"
