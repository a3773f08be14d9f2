"""Translate ticker symbols, ISINs and CUSIPs for US-listed securities."""

__version__ = "0.3.0"
