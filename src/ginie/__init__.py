"""Ginie-Micro - microservice monorepo generator."""

__version__ = "1.0.0"
