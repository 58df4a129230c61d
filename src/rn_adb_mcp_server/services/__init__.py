"""React Native analysis, advisory and package management services.

Nothing in this package talks to adb.
"""
