"""
Slate.

- backend/: Hierarchical note store, intake pipeline, REST API, database, configuration
"""
