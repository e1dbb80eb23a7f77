"""Prepare the environment of staged buildpack applications, launch them, and model staging results."""

__version__ = "0.1.0"