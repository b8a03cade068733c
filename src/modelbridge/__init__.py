"""modelbridge: import, register and export infrastructure model packages."""

__version__ = "0.1.0"
