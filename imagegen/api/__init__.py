"""imagegen adapter package.

Architectural role:
- Defines the external interaction boundary (command line).
- Performs flag parsing and console reporting.
- Delegates generation to `imagegen.image.service`.
"""
