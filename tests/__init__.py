"""Test package for cipherpoc.

What:
  Marks ``tests`` as a package so the shared fixtures in ``tests/conftest.py``
  and the driver doubles in ``tests/fakes.py`` apply to both the ``unit`` and
  ``e2e`` suites.

Invariants & Safety:
  - Importing this package has no side effects.
"""
