"""MelodyShare: invite-coded communities sharing one song a day."""

__version__ = "0.1.0"
