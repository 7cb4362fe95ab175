# ABOUTME: Sync pipeline, importer, reactive streams, and the services built on storage.
# ABOUTME: Components receive the storage gateway by injection.
