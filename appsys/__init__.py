"""Core package for migrating legacy task data into normalized applications.

The pipeline lives in :mod:`appsys.migration`; database access in
:mod:`appsys.store`; the command line entry point in :mod:`appsys.cli`.
"""

__all__: list[str] = []
