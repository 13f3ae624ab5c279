# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/cli/commands/__init__.py

"""
Command handlers for shadowdiff CLI operations.

Business logic for CLI commands, separated from the typer layer.
"""
