"""A setuptools based setup module.
"""
from setuptools import setup

# metadata is declared in pyproject.toml
setup()
