"""Unimail: self-hosted webmail sync and local mailbox state."""

__version__ = "0.1.0"
