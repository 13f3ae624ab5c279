# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/system/__init__.py

"""Logging, display and error types."""
