# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/data/__init__.py

"""Output data helpers."""
