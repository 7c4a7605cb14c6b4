"""Cut smoothing tile sheets into BYOND DMI icons."""

__version__ = "0.4.0"
