"""Visitor Pass package.

This package is organized by feature modules (visitors, visits, entries, audit, ...)
with a thin Flask controller layer and SOLID service/repository layers.
"""
