"""Proctored coding assessment backend."""
