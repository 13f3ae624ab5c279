# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/cli/__init__.py

"""Command Line Interface package for shadowdiff."""

from .main import main, app

__all__ = ['main', 'app']
