"""Packaged data files for :mod:`yablo`."""
