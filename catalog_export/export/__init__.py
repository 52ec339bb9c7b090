"""Export core – batching, conflict resolution, emission and accounting.

Import concrete pieces from their modules (``catalog_export.export.orchestrator``
and friends); this package stays import-light so storage backends can use
its exceptions.
"""
