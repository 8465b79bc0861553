"""
Business logic services.

    entity_registry          importable entity types
    mapping_service          column -> field mapping
    validation_service       per-row checks
    reconciliation_service   insert-or-update of valid rows
    import_session_service   uploaded files awaiting preview/commit
    import_job_service       import history ledger
    import_service           ingest / preview / commit pipeline

Import services from their modules; this package does not re-export them.
"""
